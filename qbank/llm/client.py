# qbank/llm/client.py

import os
import logging
import time
from typing import Optional, Dict

from openai import OpenAI
import google.generativeai as genai

from qbank.config import (
    GEMINI_MODEL,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_TEMPERATURE,
)

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Multi-provider completion client.

    Fallback order (STRICT):

    1. OpenAI (primary)
    2. Gemini (secondary)

    Guarantees:
    • Provider latency tracking
    • Failure-safe fallback
    • RuntimeError only when every provider is down
    """

    def __init__(self):

        self.openai: Optional[OpenAI] = None
        self.gemini_model = None

        self.openai_available = False
        self.gemini_available = False

        self._init_openai()
        self._init_gemini()

        logger.info(
            "LLM initialization complete",
            extra={
                "openai_available": self.openai_available,
                "gemini_available": self.gemini_available,
            },
        )

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def _init_openai(self):

        try:

            key = os.getenv("OPENAI_API_KEY")

            if key and key.startswith("sk-"):

                self.openai = OpenAI(api_key=key)

                self.openai_available = True

                logger.info("OpenAI initialized successfully")

            else:

                logger.warning("OpenAI API key missing or invalid")

        except Exception as e:

            logger.error(
                "OpenAI initialization failed",
                extra={"error": str(e)},
            )

    def _init_gemini(self):

        try:

            key = os.getenv("GEMINI_API_KEY")

            if not key:

                logger.warning("Gemini API key missing")
                return

            genai.configure(api_key=key)

            self.gemini_model = genai.GenerativeModel(model_name=GEMINI_MODEL)

            self.gemini_available = True

            logger.info("Gemini initialized successfully")

        except Exception as e:

            logger.error(
                "Gemini initialization failed",
                extra={"error": str(e)},
            )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def generate(self, prompt: str, system_prompt: str = "") -> str:

        logger.info(
            "LLM request started",
            extra={
                "openai_available": self.openai_available,
                "gemini_available": self.gemini_available,
                "prompt_length": len(prompt),
            },
        )

        if self.openai_available:

            try:

                return self._timed_call(
                    provider="openai",
                    fn=self._generate_openai,
                    prompt=prompt,
                    system_prompt=system_prompt,
                )

            except Exception as e:

                logger.warning(
                    "OpenAI failed",
                    extra={"error": str(e)},
                )

        if self.gemini_available:

            try:

                return self._timed_call(
                    provider="gemini",
                    fn=self._generate_gemini,
                    prompt=prompt,
                    system_prompt=system_prompt,
                )

            except Exception as e:

                logger.warning(
                    "Gemini failed",
                    extra={"error": str(e)},
                )

        raise RuntimeError("No LLM backend available")

    # ============================================================
    # PROVIDERS
    # ============================================================

    def _generate_openai(self, prompt: str, system_prompt: str) -> str:

        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        response = self.openai.chat.completions.create(
            model=LLM_MODEL,
            messages=messages,
            temperature=LLM_TEMPERATURE,
            max_tokens=LLM_MAX_TOKENS,
        )

        text = response.choices[0].message.content

        return text.strip()

    def _generate_gemini(self, prompt: str, system_prompt: str) -> str:

        response = self.gemini_model.generate_content(
            f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        )

        if not response or not response.text:
            raise RuntimeError("Gemini returned empty response")

        return response.text.strip()

    # ============================================================
    # LATENCY OBSERVABILITY
    # ============================================================

    def _timed_call(self, provider: str, fn, prompt: str, system_prompt: str):

        start = time.time()

        result = fn(prompt, system_prompt)

        latency = time.time() - start

        logger.info(
            "LLM provider success",
            extra={
                "provider": provider,
                "latency_seconds": round(latency, 3),
            },
        )

        return result

    # ============================================================
    # STATUS
    # ============================================================

    def get_usage_stats(self) -> Dict:

        return {
            "openai_available": self.openai_available,
            "gemini_available": self.gemini_available,
        }
