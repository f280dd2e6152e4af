# qbank/memory/embedder.py

"""
Embedding provider wrapper.

Architecture contract:
extractor → embedder → recurrence resolver

Guarantees:
• One fixed dimension per instance (checked on every response)
• Plain list of floats out, ready to persist
• Every provider failure surfaces as EmbeddingUnavailableError
• Fully observable via logs
"""

import logging
import os
from typing import List

import google.generativeai as genai
from openai import OpenAI

from qbank.config import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_PROVIDER,
    GEMINI_EMBEDDING_MODEL,
    OPENAI_EMBEDDING_MODEL,
)
from qbank.errors import EmbeddingUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_EMBED_BATCH_SIZE = 32


class Embedder:
    """
    Maps question text to a fixed-dimension vector.

    Instances are callable, so they can be injected wherever a plain
    `text -> List[float]` function is expected.
    """

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def __init__(self, provider: str = EMBEDDING_PROVIDER, client=None):

        if provider not in EMBEDDING_DIMENSIONS:
            raise ValueError(f"Unsupported embedding provider: {provider}")

        self._provider = provider
        self._dimension = EMBEDDING_DIMENSIONS[provider]

        if provider == "openai":
            self._model = OPENAI_EMBEDDING_MODEL
        else:
            self._model = GEMINI_EMBEDDING_MODEL

        logger.info(
            "Initializing embedding model",
            extra={"provider": provider, "model": self._model}
        )

        try:

            if client is not None:
                self._client = client

            elif provider == "openai":
                self._client = OpenAI()

            else:
                genai.configure(api_key=os.getenv("GEMINI_API_KEY"))
                self._client = genai

        except Exception as e:

            logger.critical(
                "Embedding model initialization failed",
                extra={"provider": provider, "error": str(e)}
            )

            raise RuntimeError(
                f"Failed to initialize embedding model: {e}"
            )

        logger.info(
            "Embedding model initialized",
            extra={
                "provider": provider,
                "model": self._model,
                "dimension": self._dimension,
            }
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def __call__(self, text: str) -> List[float]:
        return self.embed(text)

    def embed(self, text: str) -> List[float]:
        """Embed a single text."""

        if not text or not text.strip():
            raise EmbeddingUnavailableError("Cannot embed empty text")

        return self.embed_many([text])[0]

    def embed_many(
        self,
        texts: List[str],
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE
    ) -> List[List[float]]:
        """
        Embed texts in batches.

        Raises:
            EmbeddingUnavailableError: on any provider error or a
                response of the wrong shape
        """

        if not texts:
            return []

        vectors: List[List[float]] = []

        try:

            for start in range(0, len(texts), batch_size):

                batch = texts[start:start + batch_size]

                if self._provider == "openai":
                    vectors.extend(self._embed_openai(batch))
                else:
                    vectors.extend(self._embed_gemini(batch))

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={
                    "provider": self._provider,
                    "texts": len(texts),
                    "error": str(e),
                }
            )

            raise EmbeddingUnavailableError(
                f"Embedding generation failed: {e}"
            ) from e

        for vector in vectors:

            if len(vector) != self._dimension:

                raise EmbeddingUnavailableError(
                    f"Provider returned {len(vector)} dimensions, "
                    f"expected {self._dimension}"
                )

        logger.debug(
            "Embedding completed",
            extra={"texts": len(texts), "dimension": self._dimension}
        )

        return vectors

    # ============================================================
    # PROVIDERS
    # ============================================================

    def _embed_openai(self, batch: List[str]) -> List[List[float]]:

        response = self._client.embeddings.create(
            model=self._model,
            input=batch,
        )

        return [list(item.embedding) for item in response.data]

    def _embed_gemini(self, batch: List[str]) -> List[List[float]]:

        vectors = []

        for text in batch:

            result = self._client.embed_content(
                model=self._model,
                content=text,
            )

            vectors.append(list(result["embedding"]))

        return vectors

    # ============================================================
    # ACCESSORS
    # ============================================================

    def get_dimension(self) -> int:
        return self._dimension

    @property
    def provider(self) -> str:
        return self._provider

    def health_check(self) -> dict:

        return {
            "model": self._model,
            "dimension": self._dimension,
            "provider": self._provider,
            "status": "healthy"
        }
