# qbank/workflow/recurrence.py

import logging
from typing import Sequence

from qbank.config import SIMILARITY_THRESHOLD
from qbank.errors import InvalidInputError
from qbank.memory.vector_math import cosine_similarity, require_finite
from qbank.models import Resolution

logger = logging.getLogger(__name__)


class RecurrenceResolver:
    """
    Classifies a candidate embedding as a new question or a recurrence
    of one already in the subject's corpus.

    Linear scan over the subject's questions. A vector index can replace
    it behind the same `resolve` signature.
    """

    def __init__(self, store, similarity_threshold: float = SIMILARITY_THRESHOLD):

        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be within [0, 1], got {similarity_threshold}"
            )

        self._store = store
        self._threshold = similarity_threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def resolve(self, embedding: Sequence[float], subject_id: str) -> Resolution:
        """
        Find the most similar question of `subject_id` and classify.

        On a recurrence the matched question's occurrence count is
        incremented and persisted before returning, so detection and
        counting happen in one step.

        Raises:
            InvalidInputError: if `embedding` holds NaN or infinite values
            CorpusWriteError: if the increment cannot be persisted
        """

        require_finite(embedding)

        existing = self._store.list_questions(subject_id)

        if not existing:
            return Resolution(is_new=True)

        best_similarity = None
        best_question = None

        for question in existing:

            try:
                similarity = cosine_similarity(embedding, question.embedding)

            except InvalidInputError as e:

                logger.warning(
                    "Skipping question with incompatible embedding",
                    extra={
                        "subject_id": subject_id,
                        "question_id": question.id,
                        "error": str(e),
                    },
                )

                continue

            # Strict > keeps the first question on ties
            if best_similarity is None or similarity > best_similarity:
                best_similarity = similarity
                best_question = question

        if best_question is None or best_similarity < self._threshold:

            return Resolution(is_new=True, similarity=best_similarity)

        occurrence_count = self._store.increment_occurrence(best_question.id)

        logger.info(
            "Recurrence detected",
            extra={
                "subject_id": subject_id,
                "question_id": best_question.id,
                "similarity": round(best_similarity, 4),
                "occurrence_count": occurrence_count,
            },
        )

        return Resolution(
            is_new=False,
            matched_question_id=best_question.id,
            similarity=best_similarity,
            occurrence_count=occurrence_count,
        )
