from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillhire.config import settings
from skillhire.database import get_db
from skillhire.errors import ResumeUploadError, StatusTransitionError
from skillhire.models.application import Application
from skillhire.models.jobs import Job
from skillhire.models.profile import Profile
from skillhire.models.quiz import Quiz
from skillhire.models.skills import EmployeeSkill
from skillhire.routers.dependencies import EMPLOYER, get_current_user, require_employee, require_employer
from skillhire.schemas.applications import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationStatusUpdate,
    QuizSummary,
    ResumeUploadResponse,
    SignedUrlResponse,
)
from skillhire.schemas.quizzes import SkillSelection
from skillhire.services import application_status, resume_storage
from skillhire.services.quiz_assembly import assemble_in_background, create_pending_quiz
from skillhire.services.quiz_session import score_label


router = APIRouter(prefix="/applications", tags=["applications"])

logger = logging.getLogger(__name__)


def _latest_quiz(db: Session, application_id: str) -> Quiz | None:
    return (
        db.query(Quiz)
        .filter(Quiz.application_id == application_id)
        .order_by(Quiz.created_at.desc())
        .first()
    )


def application_to_read(db: Session, app: Application) -> ApplicationRead:
    quiz = _latest_quiz(db, app.id)
    return ApplicationRead(
        id=app.id,
        job_id=app.job_id,
        job_title=app.job.title if app.job else "Unknown Job",
        employee_id=app.employee_id,
        applicant_name=app.employee.display_name if app.employee else "Unknown Applicant",
        status=application_status.parse_status(app.status),
        status_label=application_status.status_label(app.status),
        resume_url=app.resume_url,
        created_at=app.created_at,
        updated_at=app.updated_at,
        quiz=(
            QuizSummary(id=quiz.id, status=quiz.status, score=quiz.score, score_label=score_label(quiz.score))
            if quiz is not None
            else None
        ),
    )


def _get_application(db: Session, application_id: str) -> Application:
    app = db.get(Application, application_id)
    if app is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    return app


def _job_quiz_skills(db: Session, job: Job, employee_id: str) -> list[SkillSelection]:
    proficiency = {
        es.skill_id: es.proficiency
        for es in db.query(EmployeeSkill).filter(EmployeeSkill.employee_id == employee_id).all()
    }
    return [
        SkillSelection(id=js.skill_id, name=js.skill.name, proficiency=proficiency.get(js.skill_id, 3))
        for js in job.skills
        if js.skill is not None
    ]


@router.post("", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
def apply_to_job(
    payload: ApplicationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    employee: Profile = Depends(require_employee),
) -> ApplicationRead:
    job = db.get(Job, payload.job_id)
    if job is None or not job.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    app = Application(job_id=job.id, employee_id=employee.id, status=application_status.ApplicationStatus.PENDING.value)
    db.add(app)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You already applied to this job") from exc
    db.refresh(app)
    logger.info("application.created application_id=%s job_id=%s", app.id, job.id)

    skills = _job_quiz_skills(db, job, employee.id)
    if settings.auto_quiz_on_apply and skills:
        quiz = create_pending_quiz(db, employee_id=employee.id, application_id=app.id)
        background_tasks.add_task(
            assemble_in_background,
            quiz.id,
            skills,
            settings.questions_per_skill,
            requester_id=employee.id,
        )

    return application_to_read(db, app)


@router.get("", response_model=list[ApplicationRead])
def list_applications(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> list[ApplicationRead]:
    query = db.query(Application)
    if current_user.role == EMPLOYER:
        query = query.join(Job, Job.id == Application.job_id).filter(Job.employer_id == current_user.id)
    else:
        query = query.filter(Application.employee_id == current_user.id)
    return [application_to_read(db, app) for app in query.order_by(Application.created_at.desc()).all()]


@router.put("/{application_id}/status", response_model=ApplicationRead)
def update_application_status(
    application_id: str,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    employer: Profile = Depends(require_employer),
) -> ApplicationRead:
    app = _get_application(db, application_id)
    if app.job is None or app.job.employer_id != employer.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your job posting")
    try:
        application_status.set_status_by_employer(app, payload.status)
    except StatusTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    db.commit()
    db.refresh(app)
    return application_to_read(db, app)


@router.post("/{application_id}/resume", response_model=ResumeUploadResponse)
async def upload_resume(
    application_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    employee: Profile = Depends(require_employee),
) -> ResumeUploadResponse:
    app = _get_application(db, application_id)
    if app.employee_id != employee.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your application")

    try:
        resume_storage.check_extension(file.filename or "")
        content = await file.read()
        path = resume_storage.save_resume(employee.id, file.filename or "resume", content)
    except ResumeUploadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    # The file is kept either way; only a requested resume moves the status.
    status_changed = application_status.can_submit_resume(app)
    if status_changed:
        application_status.submit_resume(app, path)
    else:
        app.resume_url = path
    db.commit()
    db.refresh(app)
    return ResumeUploadResponse(
        application_id=app.id,
        resume_url=path,
        status=application_status.parse_status(app.status),
        status_changed=status_changed,
    )


@router.get("/{application_id}/resume-url", response_model=SignedUrlResponse)
def get_resume_url(
    application_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> SignedUrlResponse:
    app = _get_application(db, application_id)
    is_owner = app.employee_id == current_user.id
    is_employer = app.job is not None and app.job.employer_id == current_user.id
    if not (is_owner or is_employer):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this resume")
    if not app.resume_url:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No resume uploaded")

    token, ttl = resume_storage.create_signed_token(app.resume_url)
    url = str(request.url_for("download_resume").include_query_params(token=token))
    return SignedUrlResponse(url=url, expires_in=ttl)
