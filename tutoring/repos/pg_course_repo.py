"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tutoring.db.tables import AssignmentRow, CourseRow, LessonRow
from tutoring.models.course import Assignment, AssignmentContext, Course, Lesson


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row else None

    async def get_course_owner(self, course_id: UUID) -> UUID | None:
        stmt = select(CourseRow.owner_id).where(CourseRow.id == course_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        return _row_to_lesson(row) if row else None

    async def get_lesson_course(self, lesson_id: UUID) -> UUID | None:
        stmt = select(LessonRow.course_id).where(LessonRow.id == lesson_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.order_index, LessonRow.created_at, LessonRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def count_lessons(self, course_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonRow)
            .where(LessonRow.course_id == course_id)
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def get_assignment_context(
        self, assignment_id: UUID, *, for_update: bool = False
    ) -> AssignmentContext | None:
        stmt = (
            select(
                AssignmentRow.id,
                AssignmentRow.max_score,
                LessonRow.id,
                CourseRow.id,
                CourseRow.owner_id,
            )
            .join(LessonRow, LessonRow.id == AssignmentRow.lesson_id)
            .join(CourseRow, CourseRow.id == LessonRow.course_id)
            .where(AssignmentRow.id == assignment_id)
        )
        if for_update:
            # Serialises grading against a concurrent max_score change
            stmt = stmt.with_for_update(of=AssignmentRow)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        a_id, max_score, lesson_id, course_id, owner_id = row
        return AssignmentContext(
            assignment_id=a_id,
            lesson_id=lesson_id,
            course_id=course_id,
            tutor_id=owner_id,
            max_score=max_score,
        )

    async def count_courses(self, tutor_id: UUID | None) -> int:
        stmt = select(func.count()).select_from(CourseRow)
        if tutor_id is not None:
            stmt = stmt.where(CourseRow.owner_id == tutor_id)
        return (await self._session.execute(stmt)).scalar_one()

    async def count_lessons_for_tutor(self, tutor_id: UUID | None) -> int:
        stmt = select(func.count()).select_from(LessonRow)
        if tutor_id is not None:
            stmt = stmt.join(CourseRow, CourseRow.id == LessonRow.course_id).where(
                CourseRow.owner_id == tutor_id
            )
        return (await self._session.execute(stmt)).scalar_one()

    async def count_assignments(self, course_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(AssignmentRow)
            .join(LessonRow, LessonRow.id == AssignmentRow.lesson_id)
            .where(LessonRow.course_id == course_id)
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def add_course(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                owner_id=course.owner_id,
                title=course.title,
                is_published=course.is_published,
            )
        )
        await self._session.flush()

    async def add_lesson(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                course_id=lesson.course_id,
                order_index=lesson.order_index,
                title=lesson.title,
                created_at=lesson.created_at,
            )
        )
        await self._session.flush()

    async def add_assignment(self, assignment: Assignment) -> None:
        self._session.add(
            AssignmentRow(
                id=assignment.id,
                lesson_id=assignment.lesson_id,
                title=assignment.title,
                max_score=assignment.max_score,
            )
        )
        await self._session.flush()


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        is_published=row.is_published,
    )


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        order_index=row.order_index,
        title=row.title or "",
        created_at=row.created_at,
    )
