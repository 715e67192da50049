from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from skillhire.errors import StatusTransitionError
from skillhire.models.application import Application


logger = logging.getLogger(__name__)


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    QUIZ_COMPLETED = "quiz_completed"
    RESUME_REQUESTED = "resume_requested"
    RESUME_SUBMITTED = "resume_submitted"
    INTERVIEW = "interview"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


STATUS_LABELS: dict[ApplicationStatus, str] = {
    ApplicationStatus.PENDING: "Pending",
    ApplicationStatus.QUIZ_COMPLETED: "Quiz Completed",
    ApplicationStatus.RESUME_REQUESTED: "Resume Requested",
    ApplicationStatus.RESUME_SUBMITTED: "Resume Submitted",
    ApplicationStatus.INTERVIEW: "Interview",
    ApplicationStatus.ACCEPTED: "Accepted",
    ApplicationStatus.REJECTED: "Rejected",
}

TERMINAL_STATUSES = frozenset({ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED})

# Employers may jump to any of these regardless of the current status.
EMPLOYER_SETTABLE = frozenset(s for s in ApplicationStatus if s is not ApplicationStatus.PENDING)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(value: str | ApplicationStatus) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError as exc:
        raise StatusTransitionError(f"Unknown application status: {value!r}") from exc


def status_label(value: str | ApplicationStatus) -> str:
    try:
        return STATUS_LABELS[ApplicationStatus(value)]
    except ValueError:
        return STATUS_LABELS[ApplicationStatus.PENDING]


def record_quiz_completed(application: Application) -> bool:
    """Advance an application after its linked quiz was submitted.

    Returns True when the row was touched. Applications already past
    ``quiz_completed`` keep their status.
    """

    current = parse_status(application.status)
    if current not in (ApplicationStatus.PENDING, ApplicationStatus.QUIZ_COMPLETED):
        logger.info(
            "application.quiz_completed ignored application_id=%s status=%s",
            application.id,
            current.value,
        )
        return False

    application.status = ApplicationStatus.QUIZ_COMPLETED.value
    application.updated_at = _utc_now()
    logger.info("application.status application_id=%s %s->%s", application.id, current.value, application.status)
    return True


def can_submit_resume(application: Application) -> bool:
    return application.status == ApplicationStatus.RESUME_REQUESTED.value


def submit_resume(application: Application, resume_path: str) -> None:
    if not can_submit_resume(application):
        raise StatusTransitionError(
            f"Resume was not requested for this application (status: {status_label(application.status)})"
        )
    application.resume_url = resume_path
    application.status = ApplicationStatus.RESUME_SUBMITTED.value
    application.updated_at = _utc_now()
    logger.info("application.status application_id=%s resume_requested->resume_submitted", application.id)


def set_status_by_employer(application: Application, new_status: str | ApplicationStatus) -> ApplicationStatus:
    target = parse_status(new_status)
    if target not in EMPLOYER_SETTABLE:
        raise StatusTransitionError(f"Employers cannot set status to {target.value!r}")

    previous = application.status
    application.status = target.value
    application.updated_at = _utc_now()
    logger.info("application.status application_id=%s %s->%s (employer)", application.id, previous, target.value)
    return target
