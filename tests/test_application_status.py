from __future__ import annotations

import pytest

from skillhire.errors import StatusTransitionError
from skillhire.models.application import Application
from skillhire.services.application_status import (
    ApplicationStatus,
    can_submit_resume,
    record_quiz_completed,
    set_status_by_employer,
    status_label,
    submit_resume,
)


def _app(status: str) -> Application:
    return Application(id="a1", job_id="j1", employee_id="e1", status=status)


def test_quiz_completion_advances_pending() -> None:
    app = _app("pending")
    assert record_quiz_completed(app) is True
    assert app.status == "quiz_completed"
    assert app.updated_at is not None


@pytest.mark.parametrize("status", ["resume_requested", "resume_submitted", "interview", "accepted", "rejected"])
def test_quiz_completion_leaves_later_states_alone(status) -> None:
    app = _app(status)
    assert record_quiz_completed(app) is False
    assert app.status == status


def test_employer_can_skip_intermediate_states() -> None:
    app = _app("pending")
    assert set_status_by_employer(app, "interview") is ApplicationStatus.INTERVIEW
    assert app.status == "interview"


def test_employer_can_move_backwards_from_terminal() -> None:
    app = _app("rejected")
    set_status_by_employer(app, ApplicationStatus.RESUME_REQUESTED)
    assert app.status == "resume_requested"


@pytest.mark.parametrize("status", ["pending", "hired", ""])
def test_employer_cannot_set_pending_or_unknown(status) -> None:
    app = _app("quiz_completed")
    with pytest.raises(StatusTransitionError):
        set_status_by_employer(app, status)
    assert app.status == "quiz_completed"


def test_resume_submission_requires_request() -> None:
    app = _app("resume_requested")
    assert can_submit_resume(app)
    submit_resume(app, "resumes/e1/1-cv.pdf")
    assert app.status == "resume_submitted"
    assert app.resume_url == "resumes/e1/1-cv.pdf"


def test_resume_submission_rejected_after_quiz_only() -> None:
    app = _app("quiz_completed")
    assert not can_submit_resume(app)
    with pytest.raises(StatusTransitionError):
        submit_resume(app, "resumes/e1/1-cv.pdf")
    assert app.status == "quiz_completed"
    assert app.resume_url is None


def test_status_labels() -> None:
    assert status_label("quiz_completed") == "Quiz Completed"
    assert status_label(ApplicationStatus.ACCEPTED) == "Accepted"
    assert status_label("bogus") == "Pending"
