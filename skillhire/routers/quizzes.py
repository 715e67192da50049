from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skillhire.config import settings
from skillhire.database import get_db
from skillhire.errors import (
    AnswerPersistenceError,
    IncompleteAnswersError,
    QuizStateError,
    QuizValidationError,
)
from skillhire.models.application import Application
from skillhire.models.jobs import Job
from skillhire.models.profile import Profile
from skillhire.models.quiz import Quiz, QuizAnswer, QuizQuestion
from skillhire.routers.dependencies import get_current_user
from skillhire.schemas.quizzes import (
    AnsweredQuestion,
    GenerateQuizRequest,
    GenerateQuizResponse,
    QuizDetailsResponse,
    QuizQuestionsResponse,
    QuizRead,
    SkillQuestionsOut,
    SubmitQuizRequest,
    SubmitQuizResponse,
    TakerQuestion,
)
from skillhire.services.quiz_assembly import (
    assemble_in_background,
    assemble_quiz,
    create_pending_quiz,
    ensure_replaceable,
    validate_selection,
)
from skillhire.services.quiz_session import QuizStatus, load_questions, score_label, start_quiz, submit_quiz


router = APIRouter(prefix="/quizzes", tags=["quizzes"])

logger = logging.getLogger(__name__)


def _error(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _job_employer_id(quiz: Quiz) -> str | None:
    app = quiz.application
    if app is None or app.job is None:
        return None
    return app.job.employer_id


def _get_visible_quiz(db: Session, quiz_id: str, user: Profile) -> Quiz:
    quiz = db.get(Quiz, quiz_id)
    if quiz is None or user.id not in {quiz.employee_id, _job_employer_id(quiz)}:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return quiz


def quiz_to_read(db: Session, quiz: Quiz) -> QuizRead:
    count = db.query(func.count(QuizQuestion.id)).filter(QuizQuestion.quiz_id == quiz.id).scalar() or 0
    app = quiz.application
    return QuizRead(
        id=quiz.id,
        application_id=quiz.application_id,
        employee_id=quiz.employee_id,
        status=quiz.status,
        score=quiz.score,
        score_label=score_label(quiz.score),
        created_at=quiz.created_at,
        completed_at=quiz.completed_at,
        question_count=int(count),
        job_title=app.job.title if app is not None and app.job is not None else None,
    )


def _taker_question(q: QuizQuestion) -> TakerQuestion:
    return TakerQuestion(
        id=q.id,
        quiz_id=q.quiz_id,
        skill_id=q.skill_id,
        skill_name=q.skill.name if q.skill else None,
        question=q.question,
        options=q.options,
    )


@router.post("/generate", response_model=GenerateQuizResponse)
async def generate_quiz(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> Any:
    try:
        raw = await request.json()
    except ValueError:
        return _error("Request body must be JSON")
    if not isinstance(raw, dict):
        return _error("Request body must be a JSON object")

    try:
        payload = GenerateQuizRequest.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        return _error(f"Invalid request: {where}: {first.get('msg')}")

    questions_per_skill = payload.questions_per_skill or settings.questions_per_skill
    logger.info(
        "quiz.generate user_id=%s skills=%d per_skill=%d background=%s",
        current_user.id,
        len(payload.skills),
        questions_per_skill,
        payload.background,
    )

    application_id = payload.application_id
    if payload.quiz_id is not None:
        quiz = db.get(Quiz, payload.quiz_id)
        if quiz is None or quiz.employee_id != current_user.id:
            return _error("Quiz not found", status.HTTP_404_NOT_FOUND)
        application_id = quiz.application_id
    elif application_id is not None:
        app = db.get(Application, application_id)
        if app is None or app.employee_id != current_user.id:
            return _error("Application not found", status.HTTP_404_NOT_FOUND)

    try:
        if payload.background:
            skills = validate_selection(db, payload.skills, questions_per_skill)
            if payload.quiz_id is not None:
                ensure_replaceable(db, quiz)
                quiz_id = payload.quiz_id
            else:
                quiz_id = create_pending_quiz(db, employee_id=current_user.id, application_id=application_id).id
            background_tasks.add_task(
                assemble_in_background,
                quiz_id,
                skills,
                questions_per_skill,
                requester_id=current_user.id,
            )
            return GenerateQuizResponse(data=[], quiz_id=quiz_id, pending=True)

        result = await run_in_threadpool(
            assemble_quiz,
            db,
            payload.skills,
            questions_per_skill,
            requester_id=current_user.id,
            existing_quiz_id=payload.quiz_id,
            application_id=application_id if payload.quiz_id is None else None,
        )
    except QuizValidationError as exc:
        return _error(str(exc))
    except QuizStateError as exc:
        return _error(str(exc), status.HTTP_409_CONFLICT)
    except SQLAlchemyError:
        logger.exception("quiz.generate failed user_id=%s quiz_id=%s", current_user.id, payload.quiz_id)
        return _error("Failed to generate quiz", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return GenerateQuizResponse(
        data=[
            SkillQuestionsOut(skill_id=s.skill_id, skill_name=s.skill_name, count=s.count, questions=s.questions)
            for s in result.per_skill
        ],
        quiz_id=result.quiz_id,
    )


@router.get("", response_model=list[QuizRead])
def list_quizzes(
    practice: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> list[QuizRead]:
    query = (
        db.query(Quiz)
        .outerjoin(Application, Application.id == Quiz.application_id)
        .outerjoin(Job, Job.id == Application.job_id)
        .filter(or_(Quiz.employee_id == current_user.id, Job.employer_id == current_user.id))
    )
    if practice is True:
        query = query.filter(Quiz.application_id.is_(None))
    elif practice is False:
        query = query.filter(Quiz.application_id.is_not(None))
    return [quiz_to_read(db, quiz) for quiz in query.order_by(Quiz.created_at.desc()).all()]


@router.get("/{quiz_id}", response_model=QuizRead)
def read_quiz(
    quiz_id: str,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> QuizRead:
    return quiz_to_read(db, _get_visible_quiz(db, quiz_id, current_user))


@router.get("/{quiz_id}/questions", response_model=QuizQuestionsResponse)
def read_quiz_questions(
    quiz_id: str,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> QuizQuestionsResponse:
    quiz = _get_visible_quiz(db, quiz_id, current_user)
    questions = load_questions(db, quiz.id)
    # Opening a ready quiz is what starts it; an empty one stays pending.
    if questions and quiz.employee_id == current_user.id:
        start_quiz(db, quiz)
    return QuizQuestionsResponse(
        quiz_id=quiz.id,
        status=quiz.status,
        ready=bool(questions),
        questions=[_taker_question(q) for q in questions],
    )


@router.post("/{quiz_id}/submit", response_model=SubmitQuizResponse)
def submit_quiz_answers(
    quiz_id: str,
    payload: SubmitQuizRequest,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> SubmitQuizResponse:
    quiz = db.get(Quiz, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    if quiz.employee_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the quiz taker can submit answers")

    try:
        result = submit_quiz(db, quiz, payload.answers, application_id=quiz.application_id)
    except IncompleteAnswersError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except QuizValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except QuizStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except AnswerPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to submit quiz: {exc.recorded} of {exc.total} answers were saved. Please try again.",
        ) from exc

    return SubmitQuizResponse(
        quiz_id=result.quiz_id,
        score=result.score,
        correct=result.correct,
        total=result.total,
        application_updated=result.application_updated,
    )


@router.get("/{quiz_id}/details", response_model=QuizDetailsResponse)
def read_quiz_details(
    quiz_id: str,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> QuizDetailsResponse:
    quiz = _get_visible_quiz(db, quiz_id, current_user)
    completed = quiz.status == QuizStatus.COMPLETED.value
    reveal = current_user.id == _job_employer_id(quiz) or completed

    questions = load_questions(db, quiz.id)
    latest: dict[str, QuizAnswer] = {}
    if questions:
        rows = (
            db.query(QuizAnswer)
            .filter(QuizAnswer.question_id.in_([q.id for q in questions]))
            .order_by(QuizAnswer.created_at)
            .all()
        )
        for row in rows:
            latest[row.question_id] = row

    items = []
    for q in questions:
        base = _taker_question(q).model_dump()
        answer = latest.get(q.id)
        items.append(
            AnsweredQuestion(
                **base,
                correct_answer=q.correct_answer if reveal else None,
                explanation=q.explanation if reveal else None,
                answer=answer.answer if answer is not None else None,
                is_correct=answer.is_correct if answer is not None and reveal else None,
            )
        )

    return QuizDetailsResponse(
        quiz_id=quiz.id,
        status=quiz.status,
        score=quiz.score,
        score_label=score_label(quiz.score),
        questions=items,
    )
