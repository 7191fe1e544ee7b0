from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from tutoring.models.enrollment import LessonCompletion


class CompletionRepo(Protocol):
    async def get(self, enrollment_id: UUID, lesson_id: UUID) -> LessonCompletion | None: ...
    async def upsert_completed(
        self, enrollment_id: UUID, lesson_id: UUID, now: int
    ) -> tuple[LessonCompletion, bool]: ...
    async def clear(self, enrollment_id: UUID, lesson_id: UUID) -> LessonCompletion | None: ...
    async def count_completed(self, enrollment_id: UUID) -> int: ...
    async def list_for_enrollment(self, enrollment_id: UUID) -> list[LessonCompletion]: ...
    async def delete_for_enrollment(self, enrollment_id: UUID) -> int: ...


class InMemoryCompletionRepo:
    """One row per (enrollment_id, lesson_id).

    ``upsert_completed`` returns ``(row, changed)``.  Marking an already
    completed lesson keeps the original ``completed_at`` and reports
    ``changed=False``.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], LessonCompletion] = {}

    async def get(self, enrollment_id: UUID, lesson_id: UUID) -> LessonCompletion | None:
        return self._store.get((enrollment_id, lesson_id))

    async def upsert_completed(
        self, enrollment_id: UUID, lesson_id: UUID, now: int
    ) -> tuple[LessonCompletion, bool]:
        key = (enrollment_id, lesson_id)
        existing = self._store.get(key)
        if existing is None:
            row = LessonCompletion.new(
                enrollment_id=enrollment_id, lesson_id=lesson_id, completed_at=now
            )
            self._store[key] = row
            return row, True
        if existing.completed:
            return existing, False
        row = replace(existing, completed=True, completed_at=now)
        self._store[key] = row
        return row, True

    async def clear(self, enrollment_id: UUID, lesson_id: UUID) -> LessonCompletion | None:
        key = (enrollment_id, lesson_id)
        existing = self._store.get(key)
        if existing is None:
            return None
        row = replace(existing, completed=False, completed_at=None)
        self._store[key] = row
        return row

    async def count_completed(self, enrollment_id: UUID) -> int:
        return sum(
            1
            for (eid, _), row in self._store.items()
            if eid == enrollment_id and row.completed
        )

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[LessonCompletion]:
        return [row for (eid, _), row in self._store.items() if eid == enrollment_id]

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        keys = [k for k in self._store if k[0] == enrollment_id]
        for k in keys:
            del self._store[k]
        return len(keys)

    def _dump(self) -> dict[tuple[UUID, UUID], LessonCompletion]:
        return dict(self._store)

    def _load(self, state: dict[tuple[UUID, UUID], LessonCompletion]) -> None:
        self._store = state
