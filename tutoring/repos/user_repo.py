from __future__ import annotations

from typing import Protocol
from uuid import UUID

from tutoring.core.errors import ConflictError
from tutoring.models.user import User


class UserRepo(Protocol):
    """Read access to the user directory owned by the registration system."""

    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def add(self, user: User) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def add(self, user: User) -> None:
        if any(u.email == user.email for u in self._by_id.values()):
            raise ConflictError("email already exists")
        self._by_id[user.id] = user

    def _dump(self) -> dict[UUID, User]:
        return dict(self._by_id)

    def _load(self, state: dict[UUID, User]) -> None:
        self._by_id = state
