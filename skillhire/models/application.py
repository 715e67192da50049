from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from skillhire.database import Base
from skillhire.models._ids import new_id


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)

    # See services.application_status for the allowed values and transitions.
    status = Column(String(32), nullable=False, default="pending")

    # Storage path ("resumes/<user>/<ts>-<name>"), never a public link.
    resume_url = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    job = relationship("Job")
    employee = relationship("Profile")

    __table_args__ = (
        UniqueConstraint("job_id", "employee_id", name="uq_applications_job_employee"),
    )
