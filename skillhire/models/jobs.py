# jobs.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from skillhire.database import Base
from skillhire.models._ids import new_id


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_id)
    employer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String(255), index=True, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    skills = relationship("JobSkill", cascade="all, delete-orphan", lazy="selectin")
