"""PostgreSQL implementation of EnrollmentRepo.

Uniqueness of (student_id, course_id) is enforced by the
``uq_enrollments_student_course`` constraint.  ``add`` flushes inside a
savepoint so a duplicate raises ConflictError without poisoning the
surrounding transaction.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import ColumnElement, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tutoring.core.errors import ConflictError
from tutoring.db.tables import CourseRow, EnrollmentRow, UserRow
from tutoring.models.course import Course
from tutoring.models.enrollment import Enrollment, EnrollmentSearch
from tutoring.models.page import Pagination
from tutoring.models.user import User
from tutoring.repos.pg_course_repo import _row_to_course
from tutoring.repos.pg_user_repo import _row_to_user


class PgEnrollmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, enrollment_id: UUID, *, for_update: bool = False
    ) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row else None

    async def get_by_pair(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.student_id == student_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row else None

    async def add(self, enrollment: Enrollment) -> None:
        row = EnrollmentRow(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            enrolled_at=enrollment.enrolled_at,
            progress_percent=enrollment.progress_percent,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError("student is already enrolled in this course") from exc

    async def delete(self, enrollment_id: UUID) -> bool:
        stmt = delete(EnrollmentRow).where(EnrollmentRow.id == enrollment_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def set_progress(self, enrollment_id: UUID, percent: int) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(EnrollmentRow.id == enrollment_id)
            .values(progress_percent=percent)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("enrollment not found")

    async def list_for_course(
        self, course_id: UUID, search: EnrollmentSearch, pagination: Pagination
    ) -> tuple[list[tuple[Enrollment, User]], int]:
        rows, total = await self.list_for_tutor(None, search, pagination, course_id)
        return [(enrollment, student) for enrollment, student, _ in rows], total

    async def list_for_tutor(
        self,
        tutor_id: UUID | None,
        search: EnrollmentSearch,
        pagination: Pagination,
        course_id: UUID | None = None,
    ) -> tuple[list[tuple[Enrollment, User, Course]], int]:
        conditions = _search_conditions(search)
        if tutor_id is not None:
            conditions.append(CourseRow.owner_id == tutor_id)
        if course_id is not None:
            conditions.append(EnrollmentRow.course_id == course_id)

        base = (
            select(EnrollmentRow, UserRow, CourseRow)
            .join(UserRow, UserRow.id == EnrollmentRow.student_id)
            .join(CourseRow, CourseRow.id == EnrollmentRow.course_id)
            .where(*conditions)
        )
        count_stmt = select(func.count()).select_from(base.subquery())
        total = (await self._session.execute(count_stmt)).scalar_one()

        page_stmt = (
            base.order_by(EnrollmentRow.enrolled_at.desc(), EnrollmentRow.id)
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        rows = (await self._session.execute(page_stmt)).all()
        return [
            (_row_to_enrollment(e), _row_to_user(u), _row_to_course(c)) for e, u, c in rows
        ], total

    async def list_for_student(self, student_id: UUID) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.student_id == student_id)
            .order_by(EnrollmentRow.enrolled_at.desc(), EnrollmentRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]

    async def count_for_tutor(self, tutor_id: UUID | None) -> int:
        stmt = select(func.count()).select_from(EnrollmentRow)
        if tutor_id is not None:
            stmt = stmt.join(CourseRow, CourseRow.id == EnrollmentRow.course_id).where(
                CourseRow.owner_id == tutor_id
            )
        return (await self._session.execute(stmt)).scalar_one()

    async def count_students_for_tutor(self, tutor_id: UUID | None) -> int:
        stmt = select(func.count(func.distinct(EnrollmentRow.student_id)))
        if tutor_id is not None:
            stmt = stmt.join(CourseRow, CourseRow.id == EnrollmentRow.course_id).where(
                CourseRow.owner_id == tutor_id
            )
        return (await self._session.execute(stmt)).scalar_one()

    async def counts_by_course(self, tutor_id: UUID | None) -> list[tuple[Course, int]]:
        stmt = (
            select(CourseRow, func.count(EnrollmentRow.id))
            .outerjoin(EnrollmentRow, EnrollmentRow.course_id == CourseRow.id)
            .group_by(CourseRow.id)
            .order_by(CourseRow.title, CourseRow.id)
        )
        if tutor_id is not None:
            stmt = stmt.where(CourseRow.owner_id == tutor_id)
        rows = (await self._session.execute(stmt)).all()
        return [(_row_to_course(course), count) for course, count in rows]


def _search_conditions(search: EnrollmentSearch) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if search.student:
        pattern = _like_pattern(search.student)
        conditions.append(
            or_(
                UserRow.full_name.ilike(pattern, escape="\\"),
                UserRow.email.ilike(pattern, escape="\\"),
            )
        )
    if search.course_title:
        conditions.append(CourseRow.title.ilike(_like_pattern(search.course_title), escape="\\"))
    if search.text:
        pattern = _like_pattern(search.text)
        conditions.append(
            or_(
                UserRow.full_name.ilike(pattern, escape="\\"),
                UserRow.email.ilike(pattern, escape="\\"),
                CourseRow.title.ilike(pattern, escape="\\"),
            )
        )
    return conditions


def _like_pattern(term: str) -> str:
    return f"%{_escape_like(term)}%"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        student_id=row.student_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        progress_percent=row.progress_percent,
    )
