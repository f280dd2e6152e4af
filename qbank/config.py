# qbank/config.py
"""
Configuration for the Question Bank Recurrence Service.

This file centralizes all tunable parameters for the ingestion pipeline.
Environment variables override the defaults where noted.
"""

import os


# ========== RECURRENCE DETECTION ==========

# Cosine similarity at or above which a candidate counts as a recurrence
SIMILARITY_THRESHOLD = float(os.getenv("QBANK_SIMILARITY_THRESHOLD", "0.8"))
# - Inclusive: a score of exactly 0.8 is a recurrence
# - Higher → reworded questions start to be stored twice
# - Lower → different questions on the same topic start to merge


# ========== EMBEDDING CONFIGURATION ==========

# Provider: "openai" or "gemini". Never mix providers inside one corpus,
# their vectors have different dimensions.
EMBEDDING_PROVIDER = os.getenv("QBANK_EMBEDDING_PROVIDER", "openai")

OPENAI_EMBEDDING_MODEL = "text-embedding-3-small"
GEMINI_EMBEDDING_MODEL = "models/text-embedding-004"

EMBEDDING_DIMENSIONS = {
    "openai": 1536,
    "gemini": 768,
}


# ========== LLM CONFIGURATION ==========

LLM_MODEL = "gpt-4o-mini"
GEMINI_MODEL = "gemini-2.0-flash"

# Extraction must be faithful to the paper, not creative
LLM_TEMPERATURE = 0.1
LLM_MAX_TOKENS = 4000  # A full paper can hold 20+ questions


# ========== STORAGE ==========

# "json" (local file) or "qdrant"
CORPUS_BACKEND = os.getenv("QBANK_CORPUS_BACKEND", "json")

STORAGE_DIR = os.getenv("QBANK_STORAGE_DIR", "storage")
CORPUS_PATH = os.path.join(STORAGE_DIR, "corpus.json")

QDRANT_URL = os.getenv("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_COLLECTION = os.getenv("QDRANT_COLLECTION", "questions")


# ========== UPLOADS ==========

MAX_FILE_SIZE_MB = 10
ALLOWED_FILE_EXTENSIONS = [".pdf"]
MAX_DOCUMENT_CHARACTERS = 100_000


# ========== API ==========

LEADERBOARD_DEFAULT_LIMIT = 50
LOG_LEVEL = os.getenv("QBANK_LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("QBANK_LOG_DIR", "logs")
