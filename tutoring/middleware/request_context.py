"""Request context middleware: request ID, timing and a summary log line.

The request ID (client-supplied X-Request-ID or a fresh UUID) is stored
in a ContextVar; RequestContextFilter copies it onto every log record
emitted while the request is handled, whichever module logs it.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tutoring.core.logging import request_id_var, user_id_var

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    The ID is echoed back as X-Request-ID so clients can correlate.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_token = request_id_var.set(req_id)
        user_id_token = user_id_var.set(None)

        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "user_id": getattr(request.state, "user_id", None),
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            request_id_var.reset(request_id_token)
            user_id_var.reset(user_id_token)

        response.headers["X-Request-ID"] = req_id
        return response
