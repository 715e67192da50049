"""Multiple-choice question generation for skill assessments.

Questions come from the configured LLM when one is available. Anything the
model gets wrong (transport errors, non-JSON output, malformed or duplicate
questions, too few questions) is made up for with locally synthesized
questions, so callers always receive exactly ``count`` well-formed items.
"""

from __future__ import annotations

import json
import logging
import random
import re
from typing import Any, Mapping, Protocol

from pydantic import ValidationError

from skillhire.errors import QuizValidationError
from skillhire.schemas.quizzes import GeneratedQuestion, SkillRef
from skillhire.services.llm_client import get_llm_client


logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4

DIFFICULTY_BY_PROFICIENCY: dict[int, str] = {
    1: "Very basic concepts and fundamentals",
    2: "Basic with some practical applications",
    3: "Intermediate level with practical scenarios",
    4: "Advanced concepts and problem-solving",
    5: "Expert level with complex real-world challenges",
}

LEVEL_LABELS: dict[int, str] = {
    1: "BEGINNER",
    2: "BASIC",
    3: "INTERMEDIATE",
    4: "ADVANCED",
    5: "EXPERT",
}

FALLBACK_TOPICS = (
    "best practices",
    "common pitfalls",
    "testing approaches",
    "performance considerations",
    "core concepts",
    "debugging techniques",
    "tooling and ecosystem",
    "design trade-offs",
)

SYSTEM_PROMPT = (
    "You write multiple-choice skill assessment questions for a recruitment platform. "
    "Always answer with strict JSON and nothing else."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_USE_DEFAULT = object()


class JSONCompletionClient(Protocol):
    def complete_json(self, prompt: str, *, system: str | None = None) -> str: ...


def difficulty_for(proficiency: int) -> str:
    return DIFFICULTY_BY_PROFICIENCY.get(proficiency, DIFFICULTY_BY_PROFICIENCY[5])


def level_label(proficiency: Any) -> str:
    return LEVEL_LABELS.get(proficiency, "GENERAL") if isinstance(proficiency, int) else "GENERAL"


def build_prompt(skill_name: str, proficiency: int, count: int) -> str:
    return f"""Generate {count} multiple-choice questions to assess a candidate's knowledge of {skill_name}.
Candidate self-rated proficiency: {proficiency} out of 5.
Target difficulty: {difficulty_for(proficiency)}.

Rules:
- Every question has exactly {OPTIONS_PER_QUESTION} distinct options.
- "correct_answer" must be copied verbatim from "options".
- Questions must be distinct from each other.
- Keep explanations to one or two sentences.

Respond with JSON of this shape:
{{"questions": [{{"question": "...", "options": ["...", "...", "...", "..."], "correct_answer": "...", "explanation": "..."}}]}}"""


def _coerce_skill(skill: SkillRef | Mapping[str, Any]) -> SkillRef:
    if isinstance(skill, SkillRef):
        return skill
    try:
        return SkillRef.model_validate(skill)
    except ValidationError as exc:
        raise QuizValidationError(f"Malformed skill: {exc.errors()[0].get('msg', 'invalid')}") from exc


def _looks_like_question(item: Any) -> bool:
    return isinstance(item, Mapping) and "question" in item


def decode_questions_payload(raw: str | list | dict) -> list[Any] | None:
    """Pull the question list out of an LLM response.

    Accepted shapes: a top-level array, an object with a ``questions`` array,
    or an object whose first array-valued property holds question-like items.
    Returns None for anything else.
    """

    payload: Any = raw
    if isinstance(raw, str):
        text = _FENCE_RE.sub("", raw.strip())
        if not text:
            return None
        try:
            payload = json.loads(text)
        except ValueError:
            return None

    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        questions = payload.get("questions")
        if isinstance(questions, list):
            return questions
        for value in payload.values():
            if isinstance(value, list):
                return value if value and all(_looks_like_question(v) for v in value) else None
    return None


def validate_question(item: Any) -> GeneratedQuestion | None:
    if not isinstance(item, Mapping):
        return None

    question = item.get("question")
    options = item.get("options")
    correct = item.get("correct_answer")
    if not isinstance(question, str) or not question.strip():
        return None
    if not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
        return None
    if not all(isinstance(o, str) and o.strip() for o in options):
        return None
    if not isinstance(correct, str) or not correct.strip():
        return None
    if correct not in options:
        return None

    explanation = item.get("explanation")
    return GeneratedQuestion(
        question=question.strip(),
        options=list(options),
        correct_answer=correct,
        explanation=explanation.strip() if isinstance(explanation, str) else "",
    )


def fallback_questions(
    skill_name: str,
    proficiency: Any,
    count: int,
    *,
    rng: random.Random | None = None,
    exclude: set[str] | None = None,
    start: int = 0,
) -> list[GeneratedQuestion]:
    """Synthesize ``count`` placeholder questions. Never raises for count >= 0."""

    rng = rng or random.Random()
    label = level_label(proficiency)
    taken = set(exclude or ())
    name = (skill_name or "").strip() or "this skill"

    out: list[GeneratedQuestion] = []
    n = start
    while len(out) < count:
        n += 1
        topic = FALLBACK_TOPICS[(n - 1) % len(FALLBACK_TOPICS)]
        text = f"[{label}] Question {n}: Which statement best reflects {topic} in {name}?"
        if text in taken:
            continue
        taken.add(text)

        options = [f"Option {letter}: {topic} in {name}" for letter in "ABCD"]
        correct = options[rng.randrange(OPTIONS_PER_QUESTION)]
        out.append(
            GeneratedQuestion(
                question=text,
                options=options,
                correct_answer=correct,
                explanation=f"The expected answer is {correct}.",
            )
        )
    return out


def generate_questions(
    skill: SkillRef | Mapping[str, Any],
    proficiency: int,
    count: int,
    *,
    llm: JSONCompletionClient | None | object = _USE_DEFAULT,
    rng: random.Random | None = None,
) -> list[GeneratedQuestion]:
    if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
        raise QuizValidationError("count must be a positive integer")
    if not isinstance(proficiency, int) or isinstance(proficiency, bool) or not 1 <= proficiency <= 5:
        raise QuizValidationError("proficiency must be between 1 and 5")
    ref = _coerce_skill(skill)

    client = get_llm_client() if llm is _USE_DEFAULT else llm

    questions: list[GeneratedQuestion] = []
    if client is not None:
        candidates: list[Any] | None = None
        try:
            raw = client.complete_json(build_prompt(ref.name, proficiency, count), system=SYSTEM_PROMPT)
            candidates = decode_questions_payload(raw)
            if candidates is None:
                logger.warning("LLM response for skill=%s could not be decoded; using fallback", ref.name)
        except Exception as exc:
            logger.warning("Question generation failed for skill=%s (%s); using fallback", ref.name, exc)

        seen: set[str] = set()
        for item in candidates or []:
            q = validate_question(item)
            if q is None or q.question in seen:
                continue
            seen.add(q.question)
            questions.append(q)
            if len(questions) == count:
                break

    shortfall = count - len(questions)
    if shortfall > 0:
        if client is not None:
            logger.info("Topping up %d fallback question(s) for skill=%s", shortfall, ref.name)
        questions.extend(
            fallback_questions(
                ref.name,
                proficiency,
                shortfall,
                rng=rng,
                exclude={q.question for q in questions},
            )
        )
    return questions
