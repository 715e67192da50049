from __future__ import annotations

import json
import random

import pytest

from skillhire.errors import QuizValidationError
from skillhire.services.question_generator import (
    decode_questions_payload,
    fallback_questions,
    generate_questions,
    level_label,
    validate_question,
)


SKILL = {"id": "s1", "name": "SQL"}


def _item(n: int, **overrides) -> dict:
    options = [f"answer {n}-{c}" for c in "abcd"]
    item = {
        "question": f"What does query {n} return?",
        "options": options,
        "correct_answer": options[1],
        "explanation": "Because.",
    }
    item.update(overrides)
    return item


class FakeLLM:
    def __init__(self, response) -> None:
        self.response = response
        self.prompts: list[str] = []

    def complete_json(self, prompt: str, *, system: str | None = None) -> str:
        self.prompts.append(prompt)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response if isinstance(self.response, str) else json.dumps(self.response)


def _assert_well_formed(questions, count: int) -> None:
    assert len(questions) == count
    assert len({q.question for q in questions}) == count
    for q in questions:
        assert len(q.options) == 4
        assert q.correct_answer in q.options


def test_generate_uses_llm_questions_when_valid() -> None:
    llm = FakeLLM({"questions": [_item(i) for i in range(5)]})
    questions = generate_questions(SKILL, 3, 5, llm=llm)
    _assert_well_formed(questions, 5)
    assert questions[0].question == "What does query 0 return?"
    assert "SQL" in llm.prompts[0]
    assert "Intermediate level" in llm.prompts[0]


@pytest.mark.parametrize(
    "failure",
    [
        RuntimeError("upstream 500"),
        "not json at all",
        "",
        {"unexpected": "shape"},
        {"data": [1, 2, 3]},
        [{"question": "only one", "options": ["a", "b"], "correct_answer": "a"}],
    ],
)
def test_generate_falls_back_on_any_upstream_failure(failure) -> None:
    questions = generate_questions(SKILL, 2, 4, llm=FakeLLM(failure), rng=random.Random(1))
    _assert_well_formed(questions, 4)
    assert all(q.question.startswith("[BASIC] Question") for q in questions)


def test_generate_tops_up_short_and_drops_bad_items() -> None:
    items = [
        _item(1),
        _item(1),  # duplicate
        _item(2, correct_answer="not an option"),
        _item(3, options=["x", "y", "z"]),
        _item(4),
    ]
    questions = generate_questions(SKILL, 4, 6, llm=FakeLLM(items))
    _assert_well_formed(questions, 6)
    assert [q.question for q in questions[:2]] == ["What does query 1 return?", "What does query 4 return?"]
    assert all(q.question.startswith("[ADVANCED]") for q in questions[2:])


def test_generate_truncates_extra_llm_questions() -> None:
    questions = generate_questions(SKILL, 5, 3, llm=FakeLLM([_item(i) for i in range(8)]))
    _assert_well_formed(questions, 3)


def test_generate_without_llm_is_fully_synthesized() -> None:
    questions = generate_questions(SKILL, 1, 10, llm=None)
    _assert_well_formed(questions, 10)
    assert questions[0].question == "[BEGINNER] Question 1: Which statement best reflects best practices in SQL?"
    # Topics cycle after the eighth question.
    assert "best practices" in questions[8].question


@pytest.mark.parametrize("count", [0, -1, True])
def test_generate_rejects_bad_count(count) -> None:
    with pytest.raises(QuizValidationError):
        generate_questions(SKILL, 3, count, llm=None)


@pytest.mark.parametrize("proficiency", [0, 6, "3"])
def test_generate_rejects_bad_proficiency(proficiency) -> None:
    with pytest.raises(QuizValidationError):
        generate_questions(SKILL, proficiency, 3, llm=None)


def test_generate_rejects_malformed_skill() -> None:
    with pytest.raises(QuizValidationError):
        generate_questions({"id": "s1", "name": "   "}, 3, 3, llm=None)


def test_decode_accepts_fenced_object() -> None:
    raw = "```json\n" + json.dumps({"questions": [_item(1)]}) + "\n```"
    assert decode_questions_payload(raw) == [_item(1)]


def test_decode_uses_first_array_property_only_for_question_items() -> None:
    assert decode_questions_payload({"items": [_item(1)]}) == [_item(1)]
    assert decode_questions_payload({"tags": ["a", "b"], "items": [_item(1)]}) is None
    assert decode_questions_payload("42") is None


def test_validate_question_strips_and_rejects() -> None:
    q = validate_question(_item(7, question="  padded?  ", explanation=None))
    assert q is not None
    assert q.question == "padded?"
    assert q.explanation == ""
    assert validate_question(_item(7, options=["a", "b", "c", ""])) is None
    assert validate_question("nope") is None


def test_fallback_labels_and_exclusions() -> None:
    assert level_label(3) == "INTERMEDIATE"
    assert level_label(None) == "GENERAL"

    first = fallback_questions("Docker", 3, 2, rng=random.Random(0))
    more = fallback_questions("Docker", 3, 2, rng=random.Random(0), exclude={q.question for q in first})
    assert not {q.question for q in first} & {q.question for q in more}
    assert fallback_questions("", None, 1)[0].question.endswith("in this skill?")
