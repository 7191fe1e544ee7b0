"""Error taxonomy shared by every service operation.

Each error carries a discriminating ``kind`` and a human-readable message.
The services raise them; the HTTP layer maps ``kind`` to a status code in
exactly one place (``tutoring.api.errors``).  Callers never have to match
on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INACTIVE_ACCOUNT = "inactive_account"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"
    TRANSIENT_ERROR = "transient_error"


class TutoringError(Exception):
    """Base class for every error the core surfaces to its callers."""

    kind: ErrorKind = ErrorKind.TRANSIENT_ERROR
    default_message = "request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind.value, "detail": self.message}


class UnauthenticatedError(TutoringError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "authentication required"


class InactiveAccountError(TutoringError):
    kind = ErrorKind.INACTIVE_ACCOUNT
    default_message = "account is deactivated"


class ForbiddenError(TutoringError):
    kind = ErrorKind.FORBIDDEN
    default_message = "insufficient permissions"


class NotFoundError(TutoringError):
    """Missing resource, or one outside the caller's visible scope."""

    kind = ErrorKind.NOT_FOUND
    default_message = "not found"

    def __init__(self, resource: str, resource_id: object | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        message = f"{resource} not found"
        if resource_id is not None:
            message += f": {resource_id}"
        super().__init__(message)


class ConflictError(TutoringError):
    kind = ErrorKind.CONFLICT
    default_message = "resource already exists"


class ValidationError(TutoringError):
    kind = ErrorKind.VALIDATION_ERROR
    default_message = "invalid input"


class TransientError(TutoringError):
    """Datastore unavailable or timed out.  Safe for the caller to retry."""

    kind = ErrorKind.TRANSIENT_ERROR
    default_message = "datastore temporarily unavailable"
