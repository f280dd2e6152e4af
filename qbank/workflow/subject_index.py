# qbank/workflow/subject_index.py

import logging
import threading
from typing import Dict, List, Set

from qbank.errors import InvalidInputError

logger = logging.getLogger(__name__)


class SubjectQuestionIndex:
    """
    Unique, insertion-ordered question references per subject.

    The ordered list lives in the store (Subject.questions). A set per
    subject mirrors it so membership checks do not scan the list.
    """

    def __init__(self, store):

        self._store = store
        self._members: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def _membership(self, subject_id: str) -> Set[str]:

        members = self._members.get(subject_id)

        if members is None:
            subject = self._store.get_subject(subject_id)
            members = set(subject.questions)
            self._members[subject_id] = members

        return members

    def add_reference(self, subject_id: str, question_id: str) -> bool:
        """
        Append `question_id` to the subject's list unless already present.

        Returns True when the reference was appended.

        Raises:
            SubjectNotFoundError: unknown subject
            InvalidInputError: the question belongs to another subject
            CorpusWriteError: the store could not persist the reference
        """

        with self._lock:

            members = self._membership(subject_id)

            if question_id in members:
                return False

            question = self._store.get_question(question_id)

            if question is None or question.subject_id != subject_id:
                raise InvalidInputError(
                    f"Question {question_id} does not belong to subject {subject_id}"
                )

            self._store.add_subject_reference(subject_id, question_id)

            members.add(question_id)

            logger.debug(
                "Subject reference added",
                extra={"subject_id": subject_id, "question_id": question_id},
            )

            return True

    def references(self, subject_id: str) -> List[str]:

        return list(self._store.get_subject(subject_id).questions)

    def leaderboard(self, subject_id: str, limit: int) -> List:
        """
        Referenced questions, most frequent first.

        Ties keep the subject's first-seen order.
        """

        questions = []

        for question_id in self.references(subject_id):

            question = self._store.get_question(question_id)

            if question is not None:
                questions.append(question)

        questions.sort(key=lambda q: q.occurrence_count, reverse=True)

        return questions[:limit]
