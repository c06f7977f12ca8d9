"""Custom exception classes and error handling.

Every application error is an ``HTTPException`` whose detail is the
standard envelope, so it renders the same whether or not the app-level
handler in ``app.main`` is installed.
"""

import enum
from typing import Any

from fastapi import HTTPException, status


class DenialReason(str, enum.Enum):
    """Why an exam attempt (or an exam read) was refused."""

    INACTIVE = "inactive"
    NOT_STARTED = "not_started"
    ENDED = "ended"
    ALREADY_SUBMITTED = "already_submitted"
    WRONG_ROLE = "wrong_role"


ALREADY_SUBMITTED_MESSAGE = "You have already submitted this exam"

DENIAL_CODES: dict[DenialReason, tuple[str, str]] = {
    DenialReason.INACTIVE: ("EXAM_INACTIVE", "Exam is not currently available"),
    DenialReason.NOT_STARTED: ("EXAM_NOT_STARTED", "Exam has not started yet"),
    DenialReason.ENDED: ("EXAM_ENDED", "Exam has ended"),
    DenialReason.ALREADY_SUBMITTED: ("ALREADY_SUBMITTED", ALREADY_SUBMITTED_MESSAGE),
}


class AppException(HTTPException):
    """Base application exception.

    Subclasses set ``http_status``, ``error_code`` and ``default_message``;
    ``code`` can still be overridden per instance.
    """

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "An internal server error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        code: str | None = None,
    ):
        self.code = code or self.error_code
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(
            status_code=self.http_status,
            detail={
                "success": False,
                "error": {
                    "code": self.code,
                    "message": self.message,
                    "details": self.details,
                },
            },
        )


class AuthenticationError(AppException):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_FAILED"
    default_message = "Authentication failed"


class ForbiddenError(AppException):
    """Action refused regardless of the caller's role (e.g. deleting the primary admin)."""

    http_status = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Forbidden"


class PermissionDeniedError(ForbiddenError):
    """Caller's role does not allow the requested action."""

    error_code = "PERMISSION_DENIED"
    default_message = "Permission denied"

    def __init__(self, message: str | None = None, required_role: str | None = None):
        details: dict[str, Any] = {"reason": DenialReason.WRONG_ROLE.value}
        if required_role:
            details["required_role"] = required_role
        super().__init__(message, details)


class ExamAccessDeniedError(ForbiddenError):
    """Exam lifecycle rule blocked a read or a submission."""

    def __init__(self, reason: DenialReason, exam_id: int | None = None):
        self.reason = reason
        code, message = DENIAL_CODES[reason]
        details: dict[str, Any] = {"reason": reason.value}
        if exam_id is not None:
            details["exam_id"] = exam_id
        super().__init__(message, details, code=code)


class ValidationError(AppException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"
    default_message = "Validation error"


class ConflictError(AppException):
    """A store-level uniqueness constraint rejected the write."""

    http_status = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class SubmissionConflictError(ConflictError):
    """A concurrent submission for the same (student, exam) pair won the race."""

    def __init__(self, exam_id: int | None = None):
        details: dict[str, Any] = {"reason": DenialReason.ALREADY_SUBMITTED.value}
        if exam_id is not None:
            details["exam_id"] = exam_id
        super().__init__(ALREADY_SUBMITTED_MESSAGE, details)


class NotFoundError(AppException):
    http_status = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", identifier: str | None = None):
        details = {"identifier": identifier} if identifier else None
        super().__init__(f"{resource} not found", details)
