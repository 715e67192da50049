# profiles.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from skillhire.database import get_db
from skillhire.models.profile import Profile
from skillhire.models.skills import EmployeeSkill, Skill
from skillhire.routers.dependencies import get_current_user, require_employee
from skillhire.schemas.skills import EmployeeSkillRead, EmployeeSkillsUpdate
from skillhire.schemas.user import ProfileRead


router = APIRouter(prefix="/profiles", tags=["profiles"])


def _employee_skills(db: Session, employee_id: str) -> list[EmployeeSkillRead]:
    rows = (
        db.query(EmployeeSkill, Skill)
        .join(Skill, Skill.id == EmployeeSkill.skill_id)
        .filter(EmployeeSkill.employee_id == employee_id)
        .order_by(Skill.name)
        .all()
    )
    return [EmployeeSkillRead(skill_id=s.id, name=s.name, proficiency=es.proficiency) for es, s in rows]


@router.get("/me", response_model=ProfileRead)
def read_current_profile(current_user: Profile = Depends(get_current_user)) -> ProfileRead:
    return ProfileRead.model_validate(current_user)


@router.get("/me/skills", response_model=list[EmployeeSkillRead])
def read_my_skills(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_employee),
) -> list[EmployeeSkillRead]:
    return _employee_skills(db, current_user.id)


@router.put("/me/skills", response_model=list[EmployeeSkillRead])
def replace_my_skills(
    payload: EmployeeSkillsUpdate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(require_employee),
) -> list[EmployeeSkillRead]:
    # Last entry wins when the same skill is listed twice.
    by_skill = {item.skill_id: item.proficiency for item in payload.skills}
    if by_skill:
        known = {sid for (sid,) in db.query(Skill.id).filter(Skill.id.in_(list(by_skill))).all()}
        unknown = sorted(set(by_skill) - known)
        if unknown:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown skill id(s): {', '.join(unknown)}")

    db.query(EmployeeSkill).filter(EmployeeSkill.employee_id == current_user.id).delete(synchronize_session=False)
    db.add_all(
        EmployeeSkill(employee_id=current_user.id, skill_id=skill_id, proficiency=proficiency)
        for skill_id, proficiency in by_skill.items()
    )
    db.commit()
    return _employee_skills(db, current_user.id)
