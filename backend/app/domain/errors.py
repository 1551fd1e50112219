"""Workflow error taxonomy. Each error carries the HTTP status and code used by the response envelope."""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    status_code: int = 400
    code: str = "workflow_error"

    def __init__(self, message: str, *, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotAuthenticated(WorkflowError):
    status_code = 401
    code = "not_authenticated"


class InvalidCredentials(NotAuthenticated):
    code = "invalid_credentials"
    default_message = "Invalid email or password"

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(message or self.default_message, **kwargs)


class PermissionDenied(WorkflowError):
    status_code = 403
    code = "forbidden"


class ValidationError(WorkflowError):
    status_code = 422
    code = "validation_error"


class MissingFeedback(ValidationError):
    code = "missing_feedback"


class NotFound(WorkflowError):
    status_code = 404
    code = "not_found"


class StageMismatch(WorkflowError):
    status_code = 409
    code = "stage_mismatch"


class DuplicateAssignment(WorkflowError):
    status_code = 409
    code = "duplicate_assignment"


class MissingPrerequisiteFiles(WorkflowError):
    status_code = 409
    code = "missing_prerequisite_files"


MissingFiles = MissingPrerequisiteFiles


class TransitionConflict(WorkflowError):
    status_code = 409
    code = "transition_conflict"


class UpstreamError(WorkflowError):
    """Entity store or identity provider failure; `details` keeps the upstream payload."""

    status_code = 502
    code = "upstream_error"
