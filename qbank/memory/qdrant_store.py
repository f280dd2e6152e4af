# qbank/memory/qdrant_store.py

import logging
from datetime import datetime
from typing import List, Optional

from qdrant_client.http.models import (
    FieldCondition,
    Filter,
    MatchValue,
    PointIdsList,
    PointStruct,
)

from qbank.errors import CorpusWriteError, SubjectNotFoundError
from qbank.memory.qdrant_client import QdrantVectorDB
from qbank.memory.store import CorpusStore
from qbank.models import Question


logger = logging.getLogger(__name__)

SCROLL_PAGE_SIZE = 256


class QdrantCorpusStore(CorpusStore):
    """
    Question corpus in Qdrant, subject registry on local disk.

    Subjects are few and small, so they keep the JSON persistence of
    CorpusStore. Questions are points: vector = embedding,
    payload = everything else.
    """

    def __init__(
        self,
        dim: int,
        path: Optional[str] = None,
        db: Optional[QdrantVectorDB] = None,
    ):

        if dim <= 0:
            raise ValueError("Embedding dimension must be positive")

        self._db = db or QdrantVectorDB(dim)

        super().__init__(path=path)


    # ============================================================
    # READS
    # ============================================================

    def list_questions(self, subject_id: str) -> List[Question]:

        questions = []
        offset = None

        while True:

            points, offset = self._db.client.scroll(
                collection_name=self._db.collection,
                scroll_filter=Filter(
                    must=[
                        FieldCondition(
                            key="subject_id",
                            match=MatchValue(value=subject_id),
                        )
                    ]
                ),
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )

            for point in points:
                questions.append(self._to_question(point))

            if offset is None:
                break

        # Scroll order is by point id; the resolver expects creation order
        questions.sort(key=lambda q: q.created_at or datetime.min)

        return questions


    def get_question(self, question_id: str) -> Optional[Question]:

        points = self._db.client.retrieve(
            collection_name=self._db.collection,
            ids=[question_id],
            with_payload=True,
            with_vectors=True,
        )

        if not points:
            return None

        return self._to_question(points[0])


    def count_questions(self) -> int:

        return self._db.client.count(
            collection_name=self._db.collection,
            exact=True,
        ).count


    # ============================================================
    # WRITES
    # ============================================================

    def create_question(self, question: Question) -> str:

        with self._lock:

            if question.subject_id not in self._subjects:
                raise SubjectNotFoundError(
                    f"Subject not found: {question.subject_id}"
                )

        created_at = question.created_at or datetime.utcnow()

        try:

            self._db.client.upsert(
                collection_name=self._db.collection,
                points=[
                    PointStruct(
                        id=question.id,
                        vector=list(question.embedding),
                        payload={
                            "content": question.content,
                            "subject_id": question.subject_id,
                            "subject_name": question.subject_name,
                            "question_number": question.question_number,
                            "marks": question.marks,
                            "occurrence_count": question.occurrence_count,
                            "created_at": created_at.isoformat(),
                        },
                    )
                ],
            )

        except Exception as e:

            logger.error(
                "Qdrant question upsert failed",
                extra={"question_id": question.id, "error": str(e)},
                exc_info=True,
            )

            raise CorpusWriteError(f"Question write failed: {e}") from e

        return question.id


    def increment_occurrence(self, question_id: str) -> int:

        question = self.get_question(question_id)

        if question is None:
            raise CorpusWriteError(f"Question not found: {question_id}")

        count = question.occurrence_count + 1

        try:

            self._db.client.set_payload(
                collection_name=self._db.collection,
                payload={"occurrence_count": count},
                points=[question_id],
            )

        except Exception as e:

            logger.error(
                "Qdrant occurrence update failed",
                extra={"question_id": question_id, "error": str(e)},
                exc_info=True,
            )

            raise CorpusWriteError(f"Occurrence update failed: {e}") from e

        return count


    def delete_question(self, question_id: str):

        try:

            self._db.client.delete(
                collection_name=self._db.collection,
                points_selector=PointIdsList(points=[question_id]),
            )

        except Exception as e:

            logger.error(
                "Qdrant question delete failed",
                extra={"question_id": question_id, "error": str(e)},
                exc_info=True,
            )

            raise CorpusWriteError(f"Question delete failed: {e}") from e

        logger.info("Deleted question from Qdrant", extra={"question_id": question_id})


    # ============================================================
    # HELPERS
    # ============================================================

    def _to_question(self, point) -> Question:

        payload = point.payload or {}

        created_at = payload.get("created_at")

        return Question(
            id=str(point.id),
            content=payload.get("content", ""),
            embedding=list(point.vector or []),
            subject_id=payload.get("subject_id"),
            subject_name=payload.get("subject_name", ""),
            question_number=payload.get("question_number"),
            marks=payload.get("marks"),
            occurrence_count=payload.get("occurrence_count", 1),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )
