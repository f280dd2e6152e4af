# tests/test_extraction.py
import pytest

from qbank.llm.extractor import QuestionExtractor, parse_questions
from qbank.prompts.prompt_builder import build_extraction_prompt

from conftest import FakeLLM


SAMPLE_REPLY = """Here are the questions:
[
  {"number": 1, "identifier": "1a", "content": "List out the features of Spring Framework.", "marks": 7},
  {"number": "1", "identifier": "1b", "content": "Explain Setter injection.", "marks": "[7M]"},
  {"number": 2, "identifier": "2", "content": "   ", "marks": null},
  {"number": 3, "identifier": "3", "content": "Explain Auto Wiring.", "marks": null}
]
Let me know if you need anything else."""


class TestParseQuestions:

    def test_parses_wrapped_array(self):
        candidates = parse_questions(SAMPLE_REPLY)

        assert [c.identifier for c in candidates] == ["1a", "1b", "3"]
        assert candidates[0].content == "List out the features of Spring Framework."
        assert candidates[0].number == 1
        assert candidates[0].marks == 7

    def test_coerces_marks_and_numbers(self):
        candidates = parse_questions(SAMPLE_REPLY)

        assert candidates[1].number == 1
        assert candidates[1].marks == 7
        assert candidates[2].marks is None

    def test_no_array(self):
        with pytest.raises(ValueError):
            parse_questions("I could not find any questions.")

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            parse_questions("[{'content': 'single quotes'}]")

    def test_skips_non_objects(self):
        candidates = parse_questions('["loose string", {"content": "Define work."}]')

        assert [c.content for c in candidates] == ["Define work."]

    def test_empty_array(self):
        assert parse_questions("[]") == []


class TestQuestionExtractor:

    def test_extracts_candidates(self):
        llm = FakeLLM(SAMPLE_REPLY)

        candidates = QuestionExtractor(llm).extract("1 a List out the features ...")

        assert len(candidates) == 3
        assert "1 a List out the features ..." in llm.prompts[0]

    def test_llm_failure_returns_empty(self):
        llm = FakeLLM(RuntimeError("No LLM backend available"))

        assert QuestionExtractor(llm).extract("some paper text") == []

    def test_unparseable_reply_returns_empty(self):
        assert QuestionExtractor(FakeLLM("no json here")).extract("paper") == []

    def test_empty_text_skips_llm(self):
        llm = FakeLLM(SAMPLE_REPLY)

        assert QuestionExtractor(llm).extract("   ") == []
        assert llm.prompts == []


class TestExtractionPrompt:

    def test_contains_paper_and_fields(self):
        prompt = build_extraction_prompt("UNIT I  1 a Define inertia. [5M]")

        assert "UNIT I  1 a Define inertia. [5M]" in prompt
        for field in ("number", "identifier", "content", "marks"):
            assert field in prompt
        assert prompt.endswith("JSON ARRAY:")
