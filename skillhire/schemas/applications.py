from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from skillhire.services.application_status import ApplicationStatus


class ApplicationCreate(BaseModel):
    job_id: str = Field(min_length=1)


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class QuizSummary(BaseModel):
    id: str
    status: str
    score: int | None = None
    score_label: str | None = None


class ApplicationRead(BaseModel):
    id: str
    job_id: str
    job_title: str
    employee_id: str
    applicant_name: str
    status: ApplicationStatus
    status_label: str
    resume_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    quiz: QuizSummary | None = None


class ResumeUploadResponse(BaseModel):
    application_id: str
    resume_url: str
    status: ApplicationStatus
    status_changed: bool


class SignedUrlResponse(BaseModel):
    url: str
    expires_in: int
