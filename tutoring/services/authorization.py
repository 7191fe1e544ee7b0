"""Authorization guard: one reusable check for every operation.

Operations declare a Capability (which roles may call them) and, where
the resource has an owner, an ownership predicate.  ``authorize`` is
pure: it reads nothing but its arguments and never caches a decision.

    TUTOR_OWNS_COURSE = Capability(frozenset({"tutor"}))
    authorize(principal, TUTOR_OWNS_COURSE, lambda p: p.user_id == owner_id)

Admins are implicitly included in every capability unless it is built
with ``allow_admin=False``, and skip ownership predicates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from tutoring.core.errors import (
    ForbiddenError,
    InactiveAccountError,
    UnauthenticatedError,
)
from tutoring.core.metrics import AUTHORIZATION_DENIALS
from tutoring.models.principal import Principal

logger = logging.getLogger(__name__)

OwnershipCheck = Callable[[Principal], bool]


@dataclass(frozen=True, slots=True)
class Capability:
    roles: frozenset[str]
    allow_admin: bool = True

    def permits(self, principal: Principal) -> bool:
        if self.allow_admin and principal.is_admin():
            return True
        return principal.has_any_role(self.roles)


STUDENT = Capability(frozenset({"student"}))
TUTOR = Capability(frozenset({"tutor"}))
STUDENT_OR_TUTOR = Capability(frozenset({"student", "tutor"}))


def authorize(
    principal: Principal | None,
    capability: Capability,
    ownership_check: OwnershipCheck | None = None,
) -> Principal:
    """Return the principal if allowed, else raise.

    Order of checks: authenticated → active → role → ownership.
    """
    if principal is None:
        AUTHORIZATION_DENIALS.labels(reason="unauthenticated").inc()
        raise UnauthenticatedError()

    if not principal.active:
        logger.warning("Access denied: inactive account user_id=%s", principal.user_id)
        AUTHORIZATION_DENIALS.labels(reason="inactive").inc()
        raise InactiveAccountError()

    if not capability.permits(principal):
        logger.warning(
            "Access denied: user_id=%s role=%s required_any=%s",
            principal.user_id,
            principal.role,
            sorted(capability.roles),
        )
        AUTHORIZATION_DENIALS.labels(reason="role").inc()
        raise ForbiddenError()

    if ownership_check is not None and not principal.is_admin():
        if not ownership_check(principal):
            logger.warning(
                "Access denied: user_id=%s does not own the resource",
                principal.user_id,
            )
            AUTHORIZATION_DENIALS.labels(reason="ownership").inc()
            raise ForbiddenError("not the owner of this resource")

    return principal
