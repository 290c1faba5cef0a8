import enum
from typing import Any

from fastapi import status
from pydantic import BaseModel


class ErrorCode(str, enum.Enum):
    # validation
    INVALID_INPUT = "INVALID_INPUT"

    # authorization
    ACCESS_DENIED = "ACCESS_DENIED"

    # state
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    STUDENT_NOT_ENROLLED = "STUDENT_NOT_ENROLLED"
    ASSIGNMENT_ALREADY_PUBLISHED = "ASSIGNMENT_ALREADY_PUBLISHED"
    ASSIGNMENT_INCOMPLETE = "ASSIGNMENT_INCOMPLETE"

    # submissions
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    LATE_SUBMISSION_NOT_ALLOWED = "LATE_SUBMISSION_NOT_ALLOWED"

    # modification
    CANNOT_MODIFY_WITH_SUBMISSIONS = "CANNOT_MODIFY_WITH_SUBMISSIONS"
    CANNOT_DELETE_WITH_SUBMISSIONS = "CANNOT_DELETE_WITH_SUBMISSIONS"
    DUE_DATE_MOVED_EARLIER = "DUE_DATE_MOVED_EARLIER"

    # extensions
    EXTENSION_AFTER_SUBMISSION = "EXTENSION_AFTER_SUBMISSION"
    INVALID_EXTENSION_DATE = "INVALID_EXTENSION_DATE"
    EXTENSION_TOO_LONG = "EXTENSION_TOO_LONG"

    # store
    DUPLICATE_RECORD = "DUPLICATE_RECORD"


class FieldError(BaseModel):
    field: str
    message: str
    code: str


class AssignmentError(Exception):
    """Base class for every error the engine reports to its callers."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, code: ErrorCode | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "errors": self.details}


class ValidationError(AssignmentError):
    status_code = 422

    def __init__(self, errors: list[FieldError], message: str = "Invalid input"):
        super().__init__(message, ErrorCode.INVALID_INPUT)
        self.errors = errors

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "errors": [e.model_dump() for e in self.errors],
        }


class AuthorizationError(AssignmentError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = ErrorCode.ACCESS_DENIED

    # never say which of the two it was
    def __init__(self, code: ErrorCode | None = None):
        super().__init__("Not found or access denied", code)


class ConflictError(AssignmentError):
    status_code = status.HTTP_409_CONFLICT
    default_code = ErrorCode.DUPLICATE_RECORD


class BoundsError(AssignmentError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = ErrorCode.INVALID_EXTENSION_DATE


class NotFoundError(AssignmentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = ErrorCode.ASSIGNMENT_NOT_FOUND
