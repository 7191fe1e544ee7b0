"""FastAPI dependencies: bearer token → Principal, and service lookup.

Services are built once by create_app() and kept on ``app.state``;
routes reach them through these small accessors, never through module
globals.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tutoring.core.logging import user_id_var
from tutoring.models.principal import Principal
from tutoring.services.completion_service import CompletionTracker
from tutoring.services.dashboard_service import DashboardService
from tutoring.services.enrollment_service import EnrollmentService
from tutoring.services.grading_service import GradingLedger
from tutoring.services.registry import Services

# auto_error=False: a missing header becomes UnauthenticatedError in the
# resolver, rendered by the one error handler like every other denial.
bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


async def require_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Resolve the bearer token to the caller's current Principal.

    Role and active flag come from the user directory on every request.
    Inactive principals are returned; the authorization guard rejects them.
    """
    services = get_services(request)
    token = credentials.credentials if credentials else None
    principal = await services.resolver.resolve(token)
    request.state.user_id = str(principal.user_id)
    user_id_var.set(str(principal.user_id))
    return principal


def get_enrollment_service(request: Request) -> EnrollmentService:
    return get_services(request).enrollments


def get_completion_tracker(request: Request) -> CompletionTracker:
    return get_services(request).completions


def get_grading_ledger(request: Request) -> GradingLedger:
    return get_services(request).grading


def get_dashboard_service(request: Request) -> DashboardService:
    return get_services(request).dashboard


CurrentPrincipal = Annotated[Principal, Depends(require_principal)]
