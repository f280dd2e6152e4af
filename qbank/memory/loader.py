# qbank/memory/loader.py

"""
Question paper text loader.

Architecture contract:
loader → extractor → ingestor

Only text-layer PDFs are read here; scanned papers yield little or no
text and are rejected upstream.
"""

import io
import logging
from typing import Union

from pypdf import PdfReader

from qbank.config import MAX_DOCUMENT_CHARACTERS

logger = logging.getLogger(__name__)


# ============================================================
# SAFETY: CHARACTER LIMIT
# ============================================================

def enforce_character_limit(text: str) -> str:

    if not text:
        return ""

    if len(text) > MAX_DOCUMENT_CHARACTERS:

        logger.warning(
            "Text exceeds max character limit, truncating",
            extra={
                "original_length": len(text),
                "max_allowed": MAX_DOCUMENT_CHARACTERS,
            },
        )

        return text[:MAX_DOCUMENT_CHARACTERS]

    return text


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_text(source: Union[str, bytes]) -> str:
    """Extract text from a PDF given as a file path or raw bytes."""

    if isinstance(source, (bytes, bytearray)):
        reader = PdfReader(io.BytesIO(source))
    else:
        reader = PdfReader(source)

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return enforce_character_limit("\n".join(parts))
