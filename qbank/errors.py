# qbank/errors.py

"""
Error taxonomy for the ingestion core.

Every error derives from both QBankError and the builtin it refines,
so callers can catch either.
"""


class QBankError(Exception):
    """Base class for all question bank errors."""


class InvalidInputError(QBankError, ValueError):
    """Input violates a precondition (e.g. vector dimension mismatch)."""


class EmbeddingUnavailableError(QBankError, RuntimeError):
    """The embedding provider failed or timed out for one text."""


class CorpusWriteError(QBankError, RuntimeError):
    """Persisting a question, an increment or a reference failed."""


class SubjectNotFoundError(QBankError, LookupError):
    """No subject with the given id or name exists."""


class DuplicateSubjectError(QBankError, ValueError):
    """A subject with the same name already exists."""


class CorpusLoadError(QBankError, RuntimeError):
    """The persisted corpus file exists but cannot be read back."""
