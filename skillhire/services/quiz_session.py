from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.orm import Session

from skillhire.errors import (
    AnswerPersistenceError,
    IncompleteAnswersError,
    QuizStateError,
    QuizValidationError,
    SubmissionInProgressError,
)
from skillhire.models.application import Application
from skillhire.models.quiz import Quiz, QuizAnswer, QuizQuestion
from skillhire.services import application_status


logger = logging.getLogger(__name__)


class QuizStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SubmissionResult:
    quiz_id: str
    score: int
    correct: int
    total: int
    application_updated: bool = False


_submit_guard = threading.Lock()
_submitting: set[str] = set()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_score(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up (1/8 -> 13, 2/3 -> 67)."""

    if total <= 0:
        raise QuizValidationError("Cannot score a quiz without questions")
    if not 0 <= correct <= total:
        raise QuizValidationError("correct must be between 0 and total")
    return (200 * correct + total) // (2 * total)


def score_label(score: int | None) -> str | None:
    if score is None:
        return None
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Average"
    return "Needs Improvement"


def load_questions(db: Session, quiz_id: str) -> list[QuizQuestion]:
    return (
        db.query(QuizQuestion)
        .filter(QuizQuestion.quiz_id == quiz_id)
        .order_by(QuizQuestion.skill_id, QuizQuestion.id)
        .all()
    )


def start_quiz(db: Session, quiz: Quiz) -> Quiz:
    """Mark a quiz as being taken. Safe to call on every question fetch."""

    if quiz.status == QuizStatus.PENDING.value:
        quiz.status = QuizStatus.IN_PROGRESS.value
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
        logger.info("quiz.status quiz_id=%s pending->in_progress", quiz.id)
    return quiz


def _check_answers(questions: Sequence[QuizQuestion], answers: Mapping[str, str]) -> None:
    expected = {q.id for q in questions}
    missing = sorted(qid for qid in expected if not (answers.get(qid) or "").strip())
    unexpected = sorted(qid for qid in answers if qid not in expected)
    if missing or unexpected:
        raise IncompleteAnswersError(missing, unexpected)


def submit_quiz(
    db: Session,
    quiz: Quiz,
    answers: Mapping[str, str],
    *,
    application_id: str | None = None,
    questions: Sequence[QuizQuestion] | None = None,
) -> SubmissionResult:
    """Score a quiz and record every answer.

    Input problems are rejected before anything is written. Answer rows are
    committed one at a time; if one fails, AnswerPersistenceError reports how
    many were stored and the quiz keeps its in-progress status.

    The quiz row is re-read once the submission slot is held, and the final
    update only applies to a quiz that is not completed yet, so a caller
    holding an out-of-date copy cannot overwrite a finished result.
    """

    with _submit_guard:
        if quiz.id in _submitting:
            raise SubmissionInProgressError("Quiz submission already in progress")
        _submitting.add(quiz.id)

    try:
        db.refresh(quiz)
        if quiz.status == QuizStatus.COMPLETED.value:
            raise QuizStateError("Quiz has already been completed")

        if questions is None:
            questions = load_questions(db, quiz.id)
        if not questions:
            raise QuizValidationError("Quiz has no questions yet")
        _check_answers(questions, answers)

        application: Application | None = None
        if application_id is not None:
            application = db.get(Application, application_id)
            if application is None:
                raise QuizValidationError("Application not found")

        total = len(questions)
        correct = 0
        recorded = 0
        for question in questions:
            selected = answers[question.id]
            is_correct = selected == question.correct_answer
            try:
                db.add(QuizAnswer(question_id=question.id, answer=selected, is_correct=is_correct))
                db.commit()
            except Exception as exc:
                db.rollback()
                logger.error("quiz.submit failed quiz_id=%s recorded=%d/%d", quiz.id, recorded, total)
                raise AnswerPersistenceError(recorded, total, exc) from exc
            recorded += 1
            if is_correct:
                correct += 1

        score = compute_score(correct, total)
        application_updated = False
        try:
            updated = (
                db.query(Quiz)
                .filter(Quiz.id == quiz.id, Quiz.status != QuizStatus.COMPLETED.value)
                .update(
                    {
                        Quiz.status: QuizStatus.COMPLETED.value,
                        Quiz.score: score,
                        Quiz.completed_at: _utc_now(),
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                raise QuizStateError("Quiz has already been completed")
            if application is not None:
                application_updated = application_status.record_quiz_completed(application)
                db.add(application)
            db.commit()
        except QuizStateError:
            db.rollback()
            logger.warning("quiz.submit lost completion race quiz_id=%s", quiz.id)
            raise
        except Exception:
            db.rollback()
            logger.error("quiz.submit final update failed quiz_id=%s", quiz.id)
            raise
        db.refresh(quiz)
    finally:
        with _submit_guard:
            _submitting.discard(quiz.id)

    logger.info("quiz.completed quiz_id=%s score=%d correct=%d/%d", quiz.id, score, correct, total)
    return SubmissionResult(
        quiz_id=quiz.id,
        score=score,
        correct=correct,
        total=total,
        application_updated=application_updated,
    )
