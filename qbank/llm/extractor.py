# qbank/llm/extractor.py

import json
import logging
import re
from typing import List, Optional

from qbank.models import Candidate
from qbank.prompts.prompt_builder import build_extraction_prompt
from qbank.prompts.system_prompts import QUESTION_EXTRACTION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def _to_number(value) -> Optional[float]:
    """Accept 7, 7.5, "7", "[7M]"; anything else becomes None."""

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return float(value)

    match = _NUMBER.search(str(value))

    return float(match.group()) if match else None


def parse_questions(response_text: str) -> List[Candidate]:
    """
    Parse the first JSON array in an LLM reply into candidates.

    Entries that are not objects or carry no content are dropped.

    Raises:
        ValueError: no JSON array found, or it does not parse
    """

    match = _JSON_ARRAY.search(response_text or "")

    if not match:
        raise ValueError("No JSON array in LLM response")

    items = json.loads(match.group())

    if not isinstance(items, list):
        raise ValueError("LLM response is not a JSON array")

    candidates = []

    for item in items:

        if not isinstance(item, dict):
            continue

        content = str(item.get("content") or "").strip()

        if not content:
            continue

        number = _to_number(item.get("number"))
        identifier = item.get("identifier")

        candidates.append(
            Candidate(
                content=content,
                number=int(number) if number is not None else None,
                identifier=str(identifier) if identifier is not None else None,
                marks=_to_number(item.get("marks")),
            )
        )

    return candidates


class QuestionExtractor:
    """Turns raw paper text into an ordered list of candidate questions."""

    def __init__(self, llm_client):

        self._llm = llm_client

    def extract(self, text: str) -> List[Candidate]:
        """
        Returns an empty list when the text is empty, the LLM fails or
        the reply cannot be parsed. The failure is logged.
        """

        if not text or not text.strip():

            logger.warning("Extraction skipped: empty text")

            return []

        try:

            response = self._llm.generate(
                build_extraction_prompt(text),
                system_prompt=QUESTION_EXTRACTION_SYSTEM_PROMPT,
            )

            candidates = parse_questions(response)

        except Exception as e:

            logger.error(
                "Question extraction failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )

            return []

        logger.info(
            "Questions extracted",
            extra={"questions": len(candidates), "text_length": len(text)},
        )

        return candidates
