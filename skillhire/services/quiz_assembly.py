from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from skillhire.config import settings
from skillhire.database import SessionLocal
from skillhire.errors import QuizStateError, QuizValidationError
from skillhire.models.application import Application
from skillhire.models.quiz import Quiz, QuizAnswer, QuizQuestion
from skillhire.models.skills import Skill
from skillhire.schemas.quizzes import GeneratedQuestion, SkillSelection
from skillhire.services.question_generator import fallback_questions, generate_questions, validate_question
from skillhire.services.quiz_session import QuizStatus


logger = logging.getLogger(__name__)

QuestionGenerator = Callable[[SkillSelection, int, int], list[GeneratedQuestion]]

_in_flight_guard = threading.Lock()
_in_flight: set[str] = set()


@dataclass(frozen=True)
class SkillQuestions:
    skill_id: str
    skill_name: str
    questions: list[GeneratedQuestion]

    @property
    def count(self) -> int:
        return len(self.questions)


@dataclass(frozen=True)
class AssemblyResult:
    quiz_id: str
    per_skill: list[SkillQuestions] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(s.count for s in self.per_skill)


def _default_generator(skill: SkillSelection, proficiency: int, count: int) -> list[GeneratedQuestion]:
    return generate_questions(skill, proficiency, count)


def _claim(quiz_id: str) -> bool:
    with _in_flight_guard:
        if quiz_id in _in_flight:
            return False
        _in_flight.add(quiz_id)
        return True


def _release(quiz_id: str) -> None:
    with _in_flight_guard:
        _in_flight.discard(quiz_id)


def validate_selection(db: Session, skills: Sequence[SkillSelection], questions_per_skill: int) -> list[SkillSelection]:
    if not skills:
        raise QuizValidationError("Skills array is required")
    if not isinstance(questions_per_skill, int) or questions_per_skill < 1:
        raise QuizValidationError("questionsPerSkill must be a positive integer")
    if questions_per_skill > settings.max_questions_per_skill:
        raise QuizValidationError(f"questionsPerSkill must be at most {settings.max_questions_per_skill}")

    seen: set[str] = set()
    unique: list[SkillSelection] = []
    for skill in skills:
        if not isinstance(skill.proficiency, int) or not 1 <= skill.proficiency <= 5:
            raise QuizValidationError(f"Proficiency for skill {skill.name!r} must be between 1 and 5")
        if skill.id in seen:
            continue
        seen.add(skill.id)
        unique.append(skill)

    known = {sid for (sid,) in db.query(Skill.id).filter(Skill.id.in_(list(seen))).all()}
    missing = [s.id for s in unique if s.id not in known]
    if missing:
        raise QuizValidationError(f"Unknown skill id(s): {', '.join(missing)}")
    return unique


def ensure_replaceable(db: Session, quiz: Quiz) -> None:
    """Refuse to swap the question set of a finished or partly answered quiz."""

    if quiz.status == QuizStatus.COMPLETED.value:
        raise QuizStateError("Quiz is already completed")
    answered = (
        db.query(QuizAnswer.id)
        .join(QuizQuestion, QuizQuestion.id == QuizAnswer.question_id)
        .filter(QuizQuestion.quiz_id == quiz.id)
        .first()
    )
    if answered is not None:
        raise QuizStateError("Quiz already has recorded answers; start a new quiz instead")


def create_pending_quiz(db: Session, *, employee_id: str, application_id: str | None = None) -> Quiz:
    if application_id is not None and db.get(Application, application_id) is None:
        raise QuizValidationError("Application not found")
    quiz = Quiz(employee_id=employee_id, application_id=application_id, status=QuizStatus.PENDING.value)
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info("quiz.created quiz_id=%s application_id=%s", quiz.id, application_id)
    return quiz


def _generate_all(
    skills: list[SkillSelection],
    questions_per_skill: int,
    generator: QuestionGenerator,
) -> list[SkillQuestions]:
    def run(skill: SkillSelection) -> SkillQuestions:
        try:
            produced = generator(skill, skill.proficiency, questions_per_skill)
        except Exception as exc:
            logger.error("Generation crashed for skill=%s (%s); using fallback", skill.name, exc)
            produced = []

        questions: list[GeneratedQuestion] = []
        seen: set[str] = set()
        for item in produced:
            checked = validate_question(item.model_dump() if isinstance(item, GeneratedQuestion) else item)
            if checked is None or checked.question in seen:
                continue
            seen.add(checked.question)
            questions.append(checked)

        if len(questions) < questions_per_skill:
            questions = list(questions) + fallback_questions(
                skill.name,
                skill.proficiency,
                questions_per_skill - len(questions),
                exclude={q.question for q in questions},
            )
        return SkillQuestions(skill_id=skill.id, skill_name=skill.name, questions=questions[:questions_per_skill])

    workers = max(1, min(settings.generation_workers, len(skills)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() keeps input order, so results line up with the request.
        return list(pool.map(run, skills))


def assemble_quiz(
    db: Session,
    skills: Sequence[SkillSelection],
    questions_per_skill: int,
    *,
    requester_id: str,
    existing_quiz_id: str | None = None,
    application_id: str | None = None,
    generator: QuestionGenerator | None = None,
) -> AssemblyResult:
    """Generate questions for every skill and publish them as the quiz's question set.

    Existing questions of the quiz are replaced, never appended to. The delete
    and the inserts share one commit, so readers see either the old set, or
    nothing, or the complete new set.
    """

    selection = validate_selection(db, skills, questions_per_skill)

    quiz: Quiz | None = None
    if existing_quiz_id is not None:
        quiz = db.get(Quiz, existing_quiz_id)
        if quiz is None:
            raise QuizValidationError("Quiz not found")
        ensure_replaceable(db, quiz)
    elif application_id is not None and db.get(Application, application_id) is None:
        raise QuizValidationError("Application not found")

    if quiz is None:
        quiz = create_pending_quiz(db, employee_id=requester_id, application_id=application_id)

    if not _claim(quiz.id):
        raise QuizStateError("Questions for this quiz are already being generated")
    try:
        per_skill = _generate_all(selection, questions_per_skill, generator or _default_generator)

        rows = [
            QuizQuestion(
                quiz_id=quiz.id,
                skill_id=group.skill_id,
                question=q.question,
                options=list(q.options),
                correct_answer=q.correct_answer,
                explanation=q.explanation or None,
            )
            for group in per_skill
            for q in group.questions
        ]

        try:
            db.query(QuizQuestion).filter(QuizQuestion.quiz_id == quiz.id).delete(synchronize_session=False)
            db.add_all(rows)
            db.commit()
        except Exception:
            db.rollback()
            raise
    finally:
        _release(quiz.id)

    logger.info("quiz.assembled quiz_id=%s skills=%d questions=%d", quiz.id, len(per_skill), len(rows))
    return AssemblyResult(quiz_id=quiz.id, per_skill=per_skill)


def assemble_in_background(
    quiz_id: str,
    skills: Sequence[SkillSelection],
    questions_per_skill: int,
    *,
    requester_id: str,
    generator: QuestionGenerator | None = None,
) -> None:
    """Fill a pending quiz after the HTTP response has been sent.

    Runs with its own session; failures are logged because there is no caller
    left to report them to. The client sees them as a quiz whose questions
    never show up.
    """

    with SessionLocal() as db:
        try:
            assemble_quiz(
                db,
                skills,
                questions_per_skill,
                requester_id=requester_id,
                existing_quiz_id=quiz_id,
                generator=generator,
            )
        except Exception:
            logger.exception("Background quiz assembly failed quiz_id=%s", quiz_id)
