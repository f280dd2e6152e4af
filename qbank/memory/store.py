# qbank/memory/store.py

import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from qbank.errors import (
    CorpusLoadError,
    CorpusWriteError,
    DuplicateSubjectError,
    SubjectNotFoundError,
)
from qbank.models import Question, Subject


logger = logging.getLogger(__name__)


def generate_subject_id() -> str:
    return f"subj_{uuid.uuid4().hex[:12]}"


def generate_question_id() -> str:
    return str(uuid.uuid4())


class CorpusStore:
    """
    Subjects and their question corpus.

    Everything lives in RAM; when `path` is given every write is also
    flushed to a JSON file and a failed flush rolls the write back and
    raises CorpusWriteError.
    """

    def __init__(self, path: Optional[str] = None):

        self._path = path
        self._lock = threading.RLock()

        self._subjects: Dict[str, Subject] = {}
        self._questions: Dict[str, Question] = {}
        self._subject_questions: Dict[str, List[str]] = {}

        if path:
            self._load_from_disk()

        logger.info(
            "CorpusStore initialized",
            extra={
                "path": path,
                "subjects": len(self._subjects),
                "questions": len(self._questions),
            },
        )


    # ============================================================
    # SUBJECTS
    # ============================================================

    def create_subject(self, name: str) -> Subject:

        name = name.strip()

        with self._lock:

            if any(s.name == name for s in self._subjects.values()):
                raise DuplicateSubjectError(
                    f"A subject named '{name}' already exists"
                )

            subject = Subject(
                id=generate_subject_id(),
                name=name,
                created_at=datetime.utcnow(),
            )

            self._subjects[subject.id] = subject

            self._commit(lambda: self._subjects.pop(subject.id, None))

            logger.info(
                "Subject created",
                extra={"subject_id": subject.id, "subject_name": name},
            )

            return subject.model_copy(deep=True)


    def get_subject(self, subject_id: str) -> Subject:

        with self._lock:

            subject = self._subjects.get(subject_id)

            if subject is None:
                raise SubjectNotFoundError(f"Subject not found: {subject_id}")

            return subject.model_copy(deep=True)


    def find_subject(self, name: str) -> Subject:

        with self._lock:

            for subject in self._subjects.values():

                if subject.name == name:
                    return subject.model_copy(deep=True)

        raise SubjectNotFoundError(f"Subject not found: {name}")


    def list_subjects(self) -> List[Subject]:

        with self._lock:

            return [s.model_copy(deep=True) for s in self._subjects.values()]


    def add_subject_reference(self, subject_id: str, question_id: str) -> bool:
        """Append `question_id` to the subject's list. Idempotent."""

        with self._lock:

            subject = self._subjects.get(subject_id)

            if subject is None:
                raise SubjectNotFoundError(f"Subject not found: {subject_id}")

            if question_id in subject.questions:
                return False

            subject.questions.append(question_id)

            self._commit(lambda: subject.questions.remove(question_id))

            return True


    # ============================================================
    # QUESTIONS
    # ============================================================

    def list_questions(self, subject_id: str) -> List[Question]:
        """All questions of one subject, in creation order."""

        with self._lock:

            return [
                self._questions[qid].model_copy()
                for qid in self._subject_questions.get(subject_id, [])
            ]


    def get_question(self, question_id: str) -> Optional[Question]:

        with self._lock:

            question = self._questions.get(question_id)

            return question.model_copy() if question else None


    def create_question(self, question: Question) -> str:

        with self._lock:

            if question.subject_id not in self._subjects:
                raise SubjectNotFoundError(
                    f"Subject not found: {question.subject_id}"
                )

            stored = question.model_copy(deep=True)

            if stored.created_at is None:
                stored.created_at = datetime.utcnow()

            self._questions[stored.id] = stored
            self._subject_questions.setdefault(stored.subject_id, []).append(stored.id)

            def _revert():
                self._questions.pop(stored.id, None)
                self._subject_questions[stored.subject_id].remove(stored.id)

            self._commit(_revert)

            return stored.id


    def increment_occurrence(self, question_id: str) -> int:
        """Bump `occurrence_count` by one and return the new value."""

        with self._lock:

            question = self._questions.get(question_id)

            if question is None:
                raise CorpusWriteError(f"Question not found: {question_id}")

            question.occurrence_count += 1

            def _revert():
                question.occurrence_count -= 1

            self._commit(_revert)

            return question.occurrence_count


    def delete_question(self, question_id: str):
        """Remove a question that no subject references yet."""

        with self._lock:

            question = self._questions.pop(question_id, None)

            if question is None:
                return

            ids = self._subject_questions[question.subject_id]
            position = ids.index(question_id)
            ids.remove(question_id)

            def _revert():
                self._questions[question_id] = question
                ids.insert(position, question_id)

            self._commit(_revert)


    # ============================================================
    # STATS
    # ============================================================

    def count_questions(self) -> int:

        with self._lock:
            return len(self._questions)


    def get_stats(self) -> dict:

        with self._lock:

            return {
                "total_subjects": len(self._subjects),
                "total_questions": self.count_questions(),
            }


    # ============================================================
    # PERSISTENCE
    # ============================================================

    def _commit(self, revert: Callable[[], None]):

        if not self._path:
            return

        try:

            self._save_to_disk()

        except (OSError, TypeError, ValueError) as e:

            revert()

            logger.error(
                "Corpus write failed",
                extra={"path": self._path, "error": str(e)},
                exc_info=True,
            )

            raise CorpusWriteError(f"Corpus write failed: {e}") from e


    def _serialize(self) -> dict:

        return {
            "subjects": [
                s.model_dump(mode="json") for s in self._subjects.values()
            ],
            "questions": [
                q.model_dump(mode="json") for q in self._questions.values()
            ],
        }


    def _save_to_disk(self):

        directory = os.path.dirname(self._path)

        if directory:
            os.makedirs(directory, exist_ok=True)

        tmp_path = f"{self._path}.tmp"

        with open(tmp_path, "w") as f:
            json.dump(self._serialize(), f)

        os.replace(tmp_path, self._path)


    def _load_from_disk(self):

        if not os.path.exists(self._path):

            logger.info("Corpus file not found. Starting fresh.")

            return

        # Parse everything before touching state: the file is the only
        # copy of the corpus and the next write would overwrite it.
        try:

            with open(self._path, "r") as f:
                data = json.load(f)

            subjects = [Subject(**raw) for raw in data.get("subjects", [])]
            questions = [Question(**raw) for raw in data.get("questions", [])]

        except (OSError, ValueError, TypeError, AttributeError) as e:

            logger.error(
                "Corpus load failed",
                extra={"path": self._path, "error": str(e)},
                exc_info=True,
            )

            raise CorpusLoadError(
                f"Cannot read corpus file {self._path}: {e}"
            ) from e

        for subject in subjects:
            self._subjects[subject.id] = subject

        for question in questions:
            self._questions[question.id] = question
            self._subject_questions.setdefault(
                question.subject_id, []
            ).append(question.id)

        logger.info(
            "Corpus loaded from disk",
            extra={
                "subjects": len(self._subjects),
                "questions": len(self._questions),
            },
        )
