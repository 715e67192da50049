from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from skillhire.database import get_db
from skillhire.models.jobs import Job
from skillhire.models.profile import Profile
from skillhire.models.skills import JobSkill, Skill
from skillhire.routers.dependencies import EMPLOYER, get_current_user, require_employer
from skillhire.schemas.jobs import JobCreate, JobRead, JobSkillIn, JobSkillRead, JobUpdate


router = APIRouter(prefix="/jobs", tags=["jobs"])


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def job_to_read(job: Job) -> JobRead:
    skills = [
        JobSkillRead(skill_id=js.skill_id, name=js.skill.name if js.skill else js.skill_id, importance=js.importance)
        for js in job.skills
    ]
    return JobRead(
        id=job.id,
        employer_id=job.employer_id,
        title=job.title,
        description=job.description,
        location=job.location,
        is_remote=bool(job.is_remote),
        is_active=bool(job.is_active),
        created_at=job.created_at,
        skills=sorted(skills, key=lambda s: (-s.importance, s.name)),
    )


def _validated_skills(db: Session, items: list[JobSkillIn]) -> dict[str, int]:
    by_skill = {item.skill_id: item.importance for item in items}
    known = {sid for (sid,) in db.query(Skill.id).filter(Skill.id.in_(list(by_skill))).all()}
    unknown = sorted(set(by_skill) - known)
    if unknown:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown skill id(s): {', '.join(unknown)}")
    return by_skill


def _get_owned_job(db: Session, job_id: str, employer: Profile) -> Job:
    job = db.get(Job, job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    if job.employer_id != employer.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your job posting")
    return job


@router.get("", response_model=list[JobRead])
def list_jobs(
    mine: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> list[JobRead]:
    query = db.query(Job)
    if mine and current_user.role == EMPLOYER:
        query = query.filter(Job.employer_id == current_user.id)
    else:
        query = query.filter(Job.is_active.is_(True))
    return [job_to_read(job) for job in query.order_by(Job.created_at.desc()).all()]


@router.get("/{job_id}", response_model=JobRead)
def read_job(
    job_id: str,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
) -> JobRead:
    job = db.get(Job, job_id)
    if job is None or (not job.is_active and job.employer_id != current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job_to_read(job)


@router.post("", response_model=JobRead, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    employer: Profile = Depends(require_employer),
) -> JobRead:
    by_skill = _validated_skills(db, payload.skills)
    job = Job(
        employer_id=employer.id,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        is_remote=payload.is_remote,
        is_active=True,
    )
    job.skills = [JobSkill(skill_id=sid, importance=imp) for sid, imp in by_skill.items()]
    db.add(job)
    db.commit()
    db.refresh(job)
    return job_to_read(job)


@router.put("/{job_id}", response_model=JobRead)
def update_job(
    job_id: str,
    payload: JobUpdate,
    db: Session = Depends(get_db),
    employer: Profile = Depends(require_employer),
) -> JobRead:
    job = _get_owned_job(db, job_id, employer)
    by_skill = _validated_skills(db, payload.skills)

    job.title = payload.title
    job.description = payload.description
    job.location = payload.location
    job.is_remote = payload.is_remote
    job.is_active = payload.is_active
    job.updated_at = _utc_now()

    # Required skills are replaced as a whole.
    job.skills.clear()
    db.flush()
    job.skills.extend(JobSkill(skill_id=sid, importance=imp) for sid, imp in by_skill.items())
    db.commit()
    db.refresh(job)
    return job_to_read(job)
