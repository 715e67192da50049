# skills.py
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from skillhire.database import Base
from skillhire.models._ids import new_id


class Skill(Base):
    __tablename__ = "skills"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)


class JobSkill(Base):
    __tablename__ = "job_skills"

    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True)
    skill_id = Column(String(36), ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True)
    importance = Column(Integer, nullable=False, default=3)

    skill = relationship("Skill")

    __table_args__ = (CheckConstraint("importance BETWEEN 1 AND 5", name="ck_job_skills_importance"),)


class EmployeeSkill(Base):
    __tablename__ = "employee_skills"

    employee_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    skill_id = Column(String(36), ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True)
    proficiency = Column(Integer, nullable=False, default=3)

    skill = relationship("Skill")

    __table_args__ = (CheckConstraint("proficiency BETWEEN 1 AND 5", name="ck_employee_skills_proficiency"),)
