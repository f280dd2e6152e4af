# tests/test_recurrence.py
import math

import pytest

from qbank.errors import CorpusWriteError, InvalidInputError
from qbank.memory.store import CorpusStore, generate_question_id
from qbank.models import Question
from qbank.workflow.recurrence import RecurrenceResolver


def add_question(store, subject, content, embedding, occurrence_count=1):
    question = Question(
        id=generate_question_id(),
        content=content,
        embedding=embedding,
        subject_id=subject.id,
        subject_name=subject.name,
        occurrence_count=occurrence_count,
    )
    store.create_question(question)
    store.add_subject_reference(subject.id, question.id)
    return question


def unit_at(similarity):
    """2-d vector whose cosine with [1, 0] is `similarity`."""
    return [similarity, math.sqrt(1 - similarity ** 2)]


class TestResolverConstruction:

    def test_default_threshold(self, store):
        assert RecurrenceResolver(store).threshold == 0.8

    def test_custom_threshold(self, store):
        assert RecurrenceResolver(store, similarity_threshold=0.9).threshold == 0.9

    @pytest.mark.parametrize("threshold", [-0.1, 1.01, 5])
    def test_threshold_out_of_range(self, store, threshold):
        with pytest.raises(ValueError):
            RecurrenceResolver(store, similarity_threshold=threshold)


class TestResolve:

    def test_empty_corpus_is_new(self, store, subject):
        resolution = RecurrenceResolver(store).resolve([0.5, 0.5], subject.id)

        assert resolution.is_new is True
        assert resolution.matched_question_id is None
        assert resolution.similarity is None

    def test_recurrence_increments_occurrence(self, store, subject):
        existing = add_question(store, subject, "What is Newton's second law?", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve(unit_at(0.85), subject.id)

        assert resolution.is_new is False
        assert resolution.matched_question_id == existing.id
        assert resolution.similarity == pytest.approx(0.85)
        assert resolution.occurrence_count == 2
        assert store.get_question(existing.id).occurrence_count == 2

    def test_below_threshold_is_new(self, store, subject):
        existing = add_question(store, subject, "What is Newton's second law?", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve(unit_at(0.3), subject.id)

        assert resolution.is_new is True
        assert resolution.similarity == pytest.approx(0.3)
        assert store.get_question(existing.id).occurrence_count == 1

    def test_threshold_is_inclusive(self, store, subject):
        existing = add_question(store, subject, "Define momentum.", [1.0, 0.0])

        # cos([4, 3], [1, 0]) == 4 / 5 == 0.8 exactly
        resolution = RecurrenceResolver(store).resolve([4.0, 3.0], subject.id)

        assert resolution.similarity == 0.8
        assert resolution.is_new is False
        assert resolution.matched_question_id == existing.id

    def test_just_below_threshold_is_new(self, store, subject):
        add_question(store, subject, "Define momentum.", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve(unit_at(0.79), subject.id)

        assert resolution.is_new is True

    def test_picks_most_similar(self, store, subject):
        add_question(store, subject, "A", unit_at(0.81))
        best = add_question(store, subject, "B", unit_at(0.99))
        add_question(store, subject, "C", unit_at(0.9))

        resolution = RecurrenceResolver(store).resolve([1.0, 0.0], subject.id)

        assert resolution.matched_question_id == best.id

    def test_tie_goes_to_first_question(self, store, subject):
        first = add_question(store, subject, "First", [1.0, 0.0])
        second = add_question(store, subject, "Second", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve([2.0, 0.0], subject.id)

        assert resolution.matched_question_id == first.id
        assert store.get_question(second.id).occurrence_count == 1

    def test_scoped_to_subject(self, store, subject):
        chemistry = store.create_subject("Chemistry")
        add_question(store, chemistry, "Define a mole.", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve([1.0, 0.0], subject.id)

        assert resolution.is_new is True

    def test_skips_question_with_other_dimension(self, store, subject):
        add_question(store, subject, "Legacy", [1.0, 0.0, 0.0])
        current = add_question(store, subject, "Current", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve([1.0, 0.0], subject.id)

        assert resolution.matched_question_id == current.id

    def test_only_incompatible_questions_is_new(self, store, subject):
        add_question(store, subject, "Legacy", [1.0, 0.0, 0.0])

        resolution = RecurrenceResolver(store).resolve([1.0, 0.0], subject.id)

        assert resolution.is_new is True
        assert resolution.similarity is None

    def test_zero_threshold_accepts_zero_similarity(self, store, subject):
        add_question(store, subject, "Anything", [1.0, 0.0])

        resolution = RecurrenceResolver(store, similarity_threshold=0.0).resolve(
            [0.0, 0.0], subject.id
        )

        # 0.0 >= 0.0 still counts at a zero threshold
        assert resolution.is_new is False
        assert resolution.similarity == 0.0

    def test_increment_failure_propagates(self):
        class FailingStore(CorpusStore):
            def increment_occurrence(self, question_id):
                raise CorpusWriteError("disk full")

        store = FailingStore()
        physics = store.create_subject("Physics")
        add_question(store, physics, "Q", [1.0, 0.0])

        with pytest.raises(CorpusWriteError):
            RecurrenceResolver(store).resolve([1.0, 0.0], physics.id)

    def test_non_finite_candidate_raises(self, store, subject):
        existing = add_question(store, subject, "A", [1.0, 0.0])

        with pytest.raises(InvalidInputError):
            RecurrenceResolver(store).resolve([math.nan, 0.5], subject.id)

        assert store.get_question(existing.id).occurrence_count == 1

    def test_skips_stored_question_with_nan(self, store, subject):
        add_question(store, subject, "Corrupt", [math.nan, 1.0])
        clean = add_question(store, subject, "Clean", [1.0, 0.0])

        resolution = RecurrenceResolver(store).resolve([1.0, 0.0], subject.id)

        assert resolution.matched_question_id == clean.id
        assert resolution.similarity == pytest.approx(1.0)
