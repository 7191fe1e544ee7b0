"""PostgreSQL implementation of CompletionRepo.

``upsert_completed`` is a single INSERT .. ON CONFLICT DO UPDATE on the
(enrollment_id, lesson_id) constraint.  ``completed_at`` is COALESCEd so
a repeated completion keeps the original timestamp.
"""

from __future__ import annotations

import uuid
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from tutoring.db.tables import LessonCompletionRow
from tutoring.models.enrollment import LessonCompletion


class PgCompletionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, enrollment_id: UUID, lesson_id: UUID) -> LessonCompletion | None:
        stmt = select(LessonCompletionRow).where(
            LessonCompletionRow.enrollment_id == enrollment_id,
            LessonCompletionRow.lesson_id == lesson_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_completion(row) if row else None

    async def upsert_completed(
        self, enrollment_id: UUID, lesson_id: UUID, now: int
    ) -> tuple[LessonCompletion, bool]:
        # Caller holds the enrollment row lock, so this read is stable
        before = await self.get(enrollment_id, lesson_id)
        if before is not None and before.completed:
            return before, False

        table = LessonCompletionRow.__table__
        stmt = insert(table).values(
            id=uuid.uuid4(),
            enrollment_id=enrollment_id,
            lesson_id=lesson_id,
            completed=True,
            completed_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.enrollment_id, table.c.lesson_id],
            set_={
                "completed": True,
                "completed_at": func.coalesce(
                    table.c.completed_at, stmt.excluded.completed_at
                ),
            },
        ).returning(*table.c)
        row = (await self._session.execute(stmt)).one()
        return (
            LessonCompletion(
                id=row.id,
                enrollment_id=row.enrollment_id,
                lesson_id=row.lesson_id,
                completed=row.completed,
                completed_at=row.completed_at,
            ),
            True,
        )

    async def clear(self, enrollment_id: UUID, lesson_id: UUID) -> LessonCompletion | None:
        stmt = (
            update(LessonCompletionRow)
            .where(
                LessonCompletionRow.enrollment_id == enrollment_id,
                LessonCompletionRow.lesson_id == lesson_id,
            )
            .values(completed=False, completed_at=None)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(enrollment_id, lesson_id)

    async def count_completed(self, enrollment_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonCompletionRow)
            .where(
                LessonCompletionRow.enrollment_id == enrollment_id,
                LessonCompletionRow.completed.is_(True),
            )
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def list_for_enrollment(self, enrollment_id: UUID) -> list[LessonCompletion]:
        stmt = select(LessonCompletionRow).where(
            LessonCompletionRow.enrollment_id == enrollment_id
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_completion(r) for r in rows]

    async def delete_for_enrollment(self, enrollment_id: UUID) -> int:
        stmt = delete(LessonCompletionRow).where(
            LessonCompletionRow.enrollment_id == enrollment_id
        )
        result = await self._session.execute(stmt)
        return result.rowcount


def _row_to_completion(row: LessonCompletionRow) -> LessonCompletion:
    return LessonCompletion(
        id=row.id,
        enrollment_id=row.enrollment_id,
        lesson_id=row.lesson_id,
        completed=row.completed,
        completed_at=row.completed_at,
    )
