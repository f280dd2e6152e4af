# tests/conftest.py
import os
import sys
import tempfile

import pytest

# Keep metrics and logs written at import time out of the working tree
_TMP_STORAGE = tempfile.mkdtemp(prefix="qbank-tests-")
os.environ.setdefault("QBANK_STORAGE_DIR", _TMP_STORAGE)
os.environ.setdefault("QBANK_LOG_DIR", os.path.join(_TMP_STORAGE, "logs"))

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from qbank.errors import EmbeddingUnavailableError
from qbank.memory.store import CorpusStore
from qbank.models import Candidate
from qbank.workflow.ingestor import QuestionCorpusIngestor


FAKE_DIMENSION = 64


class FakeEmbedder:
    """
    Deterministic stand-in for the embedding provider.

    Texts listed in `vectors` get that vector. Any other text gets its own
    one-hot axis, so distinct unknown texts are orthogonal (similarity 0)
    and a repeated text always maps to the same vector.
    """

    def __init__(self, vectors=None, fail_on=(), dimension=FAKE_DIMENSION):
        self.vectors = dict(vectors or {})
        self.fail_on = set(fail_on)
        self.dimension = dimension
        self.calls = []
        self._axes = {}

    def __call__(self, text):
        self.calls.append(text)

        if text in self.fail_on:
            raise EmbeddingUnavailableError(f"provider timeout for: {text}")

        if text in self.vectors:
            return list(self.vectors[text])

        if text not in self._axes:
            if len(self._axes) >= self.dimension:
                raise ValueError(
                    f"FakeEmbedder ran out of axes after {self.dimension} distinct texts"
                )
            self._axes[text] = len(self._axes)

        vector = [0.0] * self.dimension
        vector[self._axes[text]] = 1.0
        return vector


class FakeLLM:
    """Returns a canned reply, or raises if given an exception."""

    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    def generate(self, prompt, system_prompt=""):
        self.prompts.append(prompt)

        if isinstance(self.reply, Exception):
            raise self.reply

        return self.reply


@pytest.fixture
def store():
    """In-memory corpus store, no persistence."""
    return CorpusStore()


@pytest.fixture
def subject(store):
    return store.create_subject("Physics")


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def ingestor(store, embedder):
    return QuestionCorpusIngestor(store=store, embed_fn=embedder)


@pytest.fixture
def make_candidates():
    """Build Candidate objects from plain strings."""
    def _make(*contents):
        return [
            Candidate(content=c, number=i + 1, marks=5)
            for i, c in enumerate(contents)
        ]
    return _make
