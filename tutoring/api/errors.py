"""Render TutoringError as JSON with the status code for its kind.

This is the only place error kinds become HTTP status codes.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tutoring.core.errors import ErrorKind, TutoringError, ValidationError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.INACTIVE_ACCOUNT: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.TRANSIENT_ERROR: 503,
}

TRANSIENT_RETRY_AFTER_SECONDS = 1


async def tutoring_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, TutoringError)
    status_code = STATUS_BY_KIND[exc.kind]
    headers: dict[str, str] = {}
    if exc.kind is ErrorKind.UNAUTHENTICATED:
        headers["WWW-Authenticate"] = "Bearer"
    elif exc.kind is ErrorKind.TRANSIENT_ERROR:
        headers["Retry-After"] = str(TRANSIENT_RETRY_AFTER_SECONDS)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request failed kind=%s status=%d detail=%s",
        exc.kind.value,
        status_code,
        exc.message,
        extra={"error_kind": exc.kind.value, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed bodies, path and query values become a ValidationError."""
    assert isinstance(exc, RequestValidationError)
    problems = [_describe(err) for err in exc.errors()]
    error = ValidationError("; ".join(problems) if problems else None)
    return await tutoring_error_handler(request, error)


def _describe(err: dict) -> str:
    # loc is e.g. ("body", "student_id") or ("path", "enrollment_id")
    loc = ".".join(str(part) for part in err.get("loc", ()))
    msg = err.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TutoringError, tutoring_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
