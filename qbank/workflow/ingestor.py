# qbank/workflow/ingestor.py
"""
Drives one paper's extracted questions through recurrence detection.

Architecture contract:
extractor → ingestor → (embedder → resolver → store, subject index)

Candidates are processed one at a time in input order: a paper may hold
the same question twice and the second copy must see the first.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, List, Union

from pydantic import ValidationError

from qbank.models import (
    Candidate,
    CandidateFailure,
    IngestionResult,
    Question,
    RecurrenceDetail,
)
from qbank.memory.store import generate_question_id
from qbank.workflow.recurrence import RecurrenceResolver
from qbank.workflow.subject_index import SubjectQuestionIndex

logger = logging.getLogger(__name__)


EmbedFn = Callable[[str], List[float]]


class SubjectLocks:
    """One lock per subject id; different subjects never block each other."""

    def __init__(self):

        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, subject_id: str) -> threading.Lock:

        with self._guard:
            return self._locks.setdefault(subject_id, threading.Lock())

    @contextmanager
    def hold(self, subject_id: str):

        lock = self.get(subject_id)

        with lock:
            yield


class QuestionCorpusIngestor:

    def __init__(
        self,
        store,
        embed_fn: EmbedFn,
        resolver: RecurrenceResolver = None,
        index: SubjectQuestionIndex = None,
        locks: SubjectLocks = None,
    ):

        self._store = store
        self._embed = embed_fn
        self._resolver = resolver or RecurrenceResolver(store)
        self._index = index or SubjectQuestionIndex(store)
        self._locks = locks or SubjectLocks()

    @property
    def index(self) -> SubjectQuestionIndex:
        return self._index

    def ingest(
        self,
        candidates: Iterable[Union[Candidate, dict]],
        subject_id: str,
    ) -> IngestionResult:
        """
        Classify and persist every candidate of one paper.

        Never fails because of a single candidate: validation, embedding
        and write errors are recorded in `failures` and the batch moves
        on. Work already committed for earlier candidates stays.

        Raises:
            SubjectNotFoundError: if `subject_id` does not exist
        """

        subject = self._store.get_subject(subject_id)

        items = list(candidates)

        result = IngestionResult(
            subject_id=subject.id,
            subject_name=subject.name,
            total_candidates=len(items),
        )

        start_time = time.time()

        with self._locks.hold(subject_id):

            for position, item in enumerate(items):

                try:
                    candidate = item if isinstance(item, Candidate) else Candidate(**item)

                except (ValidationError, TypeError) as e:

                    result.processed += 1
                    self._record_failure(result, subject_id, position, _raw_content(item), e)
                    continue

                content = candidate.content.strip()

                if not content:
                    result.skipped += 1
                    continue

                result.processed += 1

                try:

                    self._ingest_one(position, content, candidate, subject, result)

                except Exception as e:

                    self._record_failure(result, subject_id, position, content, e)

        logger.info(
            "Ingestion batch completed",
            extra={
                "subject_id": subject_id,
                "total_candidates": result.total_candidates,
                "new_questions": result.new_count,
                "recurrences": result.recurrence_count,
                "failed": result.failed_count,
                "skipped": result.skipped,
                "latency_seconds": round(time.time() - start_time, 3),
            },
        )

        return result

    def _record_failure(self, result, subject_id, position, content, error):

        logger.warning(
            "Candidate ingestion failed",
            extra={
                "subject_id": subject_id,
                "candidate_index": position,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )

        result.failures.append(
            CandidateFailure(
                candidate_index=position,
                content=content,
                error_type=type(error).__name__,
                error=str(error),
            )
        )

        result.failed_count += 1

    def _ingest_one(self, position, content, candidate, subject, result):

        embedding = self._embed(content)

        resolution = self._resolver.resolve(embedding, subject.id)

        if resolution.is_new:

            question = Question(
                id=generate_question_id(),
                content=content,
                embedding=list(embedding),
                subject_id=subject.id,
                subject_name=subject.name,
                question_number=candidate.number,
                marks=candidate.marks,
                occurrence_count=1,
            )

            question_id = self._store.create_question(question)

            try:
                self._index.add_reference(subject.id, question_id)

            except Exception:
                # An unreferenced question must not stay matchable
                self._store.delete_question(question_id)
                raise

            result.created_question_ids.append(question_id)
            result.new_count += 1

            return

        self._index.add_reference(subject.id, resolution.matched_question_id)

        result.recurrences.append(
            RecurrenceDetail(
                candidate_index=position,
                matched_question_id=resolution.matched_question_id,
                similarity=resolution.similarity,
                occurrence_count=resolution.occurrence_count,
            )
        )

        result.recurrence_count += 1


def _raw_content(item) -> str:

    if isinstance(item, dict) and item.get("content") is not None:
        return str(item["content"]).strip()

    return ""
