# skills.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from skillhire.database import get_db
from skillhire.models.profile import Profile
from skillhire.models.skills import Skill
from skillhire.routers.dependencies import get_current_user, require_employer
from skillhire.schemas.skills import SkillCreate, SkillRead


router = APIRouter(prefix="/skills", tags=["skills"])


@router.get("", response_model=list[SkillRead])
def list_skills(
    q: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    _user: Profile = Depends(get_current_user),
) -> list[SkillRead]:
    query = db.query(Skill)
    term = (q or "").strip().lower()
    if term:
        query = query.filter(func.lower(Skill.name).contains(term))
    return [SkillRead.model_validate(s) for s in query.order_by(Skill.name).limit(limit).all()]


@router.post("", response_model=SkillRead, status_code=status.HTTP_201_CREATED)
def create_skill(
    payload: SkillCreate,
    db: Session = Depends(get_db),
    _employer: Profile = Depends(require_employer),
) -> SkillRead:
    existing = db.query(Skill).filter(func.lower(Skill.name) == payload.name.lower()).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Skill already exists")
    skill = Skill(name=payload.name, description=payload.description)
    db.add(skill)
    db.commit()
    db.refresh(skill)
    return SkillRead.model_validate(skill)
