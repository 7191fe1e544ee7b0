from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID

Role = Literal["student", "tutor", "moderator", "admin"]

ROLES: frozenset[str] = frozenset({"student", "tutor", "moderator", "admin"})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity for one request.

    Produced by the PrincipalResolver from a bearer credential plus the
    current user record.  Never persisted and never cached across
    requests: role changes and deactivation apply on the next call.
    """

    user_id: UUID
    role: Role
    active: bool = True

    def has_role(self, role: str) -> bool:
        return self.role == role

    def has_any_role(self, roles: frozenset[str] | set[str]) -> bool:
        return self.role in roles

    def is_admin(self) -> bool:
        return self.role == "admin"
