# qbank/services.py
"""
Explicit construction of the external clients and the ingestion core.

Built once at application startup and stored on `app.state.services`.
Tests build a Services with fakes instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from qbank.config import (
    CORPUS_BACKEND,
    CORPUS_PATH,
    EMBEDDING_PROVIDER,
    SIMILARITY_THRESHOLD,
)
from qbank.llm.client import LLMClient
from qbank.llm.extractor import QuestionExtractor
from qbank.memory.embedder import Embedder
from qbank.memory.qdrant_store import QdrantCorpusStore
from qbank.memory.store import CorpusStore
from qbank.workflow.ingestor import QuestionCorpusIngestor
from qbank.workflow.recurrence import RecurrenceResolver

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: CorpusStore
    ingestor: QuestionCorpusIngestor
    extractor: Optional[QuestionExtractor] = None
    embedding_provider: str = EMBEDDING_PROVIDER
    corpus_backend: str = CORPUS_BACKEND


def build_store(backend: str, dim: int) -> CorpusStore:

    if backend == "json":
        return CorpusStore(path=CORPUS_PATH)

    if backend == "qdrant":
        return QdrantCorpusStore(dim=dim, path=CORPUS_PATH)

    raise ValueError(f"Unsupported corpus backend: {backend}")


def build_services() -> Services:

    embedder = Embedder(provider=EMBEDDING_PROVIDER)

    store = build_store(CORPUS_BACKEND, embedder.get_dimension())

    ingestor = QuestionCorpusIngestor(
        store=store,
        embed_fn=embedder,
        resolver=RecurrenceResolver(store, similarity_threshold=SIMILARITY_THRESHOLD),
    )

    extractor = QuestionExtractor(LLMClient())

    logger.info(
        "Services built",
        extra={
            "embedding_provider": embedder.provider,
            "corpus_backend": CORPUS_BACKEND,
            "similarity_threshold": SIMILARITY_THRESHOLD,
        },
    )

    return Services(
        store=store,
        ingestor=ingestor,
        extractor=extractor,
        embedding_provider=embedder.provider,
        corpus_backend=CORPUS_BACKEND,
    )
