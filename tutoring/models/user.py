from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from tutoring.models.principal import Role


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    full_name: str = ""
    role: Role = "student"
    is_active: bool = True

    @staticmethod
    def new(*, email: str, full_name: str = "", role: Role = "student") -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            full_name=full_name,
            role=role,
        )
