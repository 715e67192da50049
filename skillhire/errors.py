from __future__ import annotations


class QuizValidationError(ValueError):
    """Rejected input; raised before any side effect."""


class IncompleteAnswersError(QuizValidationError):
    def __init__(self, missing: list[str], unexpected: list[str] | None = None) -> None:
        self.missing = list(missing)
        self.unexpected = list(unexpected or [])
        parts = []
        if self.missing:
            parts.append(f"{len(self.missing)} question(s) unanswered")
        if self.unexpected:
            parts.append(f"{len(self.unexpected)} answer(s) for unknown questions")
        super().__init__("Incomplete quiz: " + ", ".join(parts or ["no answers"]))


class QuizStateError(RuntimeError):
    pass


class SubmissionInProgressError(QuizStateError):
    pass


class AnswerPersistenceError(RuntimeError):
    """A quiz answer write failed; `recorded` answers were stored before it."""

    def __init__(self, recorded: int, total: int, cause: BaseException | None = None) -> None:
        self.recorded = recorded
        self.total = total
        message = f"Failed to record answers ({recorded}/{total} saved)"
        if cause is not None:
            message = f"{message}: {type(cause).__name__}: {cause}"
        super().__init__(message)


class StatusTransitionError(ValueError):
    pass


class ResumeUploadError(ValueError):
    pass
