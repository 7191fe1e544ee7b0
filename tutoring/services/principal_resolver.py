"""Bearer credential → Principal.

The resolver verifies the token and then reads the CURRENT user record,
so the returned Principal reflects today's role and active flag rather
than whatever was true when the token was minted.
"""

from __future__ import annotations

import logging
from uuid import UUID

import jwt

from tutoring.core.errors import UnauthenticatedError
from tutoring.core.metrics import AUTHORIZATION_DENIALS
from tutoring.models.principal import ROLES, Principal
from tutoring.repos.unit_of_work import UnitOfWorkFactory
from tutoring.services import token_service

logger = logging.getLogger(__name__)


class PrincipalResolver:
    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def resolve(self, credential: str | None) -> Principal:
        """Return the Principal for a bearer token.

        Raises UnauthenticatedError for a missing, expired, malformed or
        orphaned token.  An inactive user still resolves (active=False);
        the authorization guard rejects it with InactiveAccountError.
        """
        if not credential:
            AUTHORIZATION_DENIALS.labels(reason="unauthenticated").inc()
            raise UnauthenticatedError()

        try:
            claims = token_service.decode_access_token(credential)
        except jwt.ExpiredSignatureError:
            logger.warning("Expired token rejected")
            AUTHORIZATION_DENIALS.labels(reason="unauthenticated").inc()
            raise UnauthenticatedError("token expired") from None
        except jwt.InvalidTokenError as e:
            logger.warning("Invalid token rejected: %s", e)
            AUTHORIZATION_DENIALS.labels(reason="unauthenticated").inc()
            raise UnauthenticatedError("invalid token") from None

        try:
            user_id = UUID(claims["sub"])
        except ValueError:
            logger.warning("Token subject is not a user id sub=%s", claims["sub"])
            AUTHORIZATION_DENIALS.labels(reason="unauthenticated").inc()
            raise UnauthenticatedError("invalid token") from None

        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)

        if user is None or user.role not in ROLES:
            logger.warning("Token for unknown user rejected user_id=%s", user_id)
            AUTHORIZATION_DENIALS.labels(reason="unauthenticated").inc()
            raise UnauthenticatedError("invalid token")

        principal = Principal(user_id=user.id, role=user.role, active=user.is_active)
        logger.debug(
            "Principal resolved user_id=%s role=%s active=%s",
            principal.user_id,
            principal.role,
            principal.active,
        )
        return principal
