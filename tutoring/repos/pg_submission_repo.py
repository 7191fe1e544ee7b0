"""PostgreSQL implementation of SubmissionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import ColumnElement, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tutoring.core.errors import ConflictError
from tutoring.db.tables import AssignmentRow, CourseRow, LessonRow, SubmissionRow, UserRow
from tutoring.models.page import Pagination
from tutoring.models.submission import Submission, SubmissionSearch, SubmissionView
from tutoring.repos.pg_enrollment_repo import _like_pattern


class PgSubmissionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, submission_id: UUID) -> Submission | None:
        row = await self._session.get(SubmissionRow, submission_id)
        return _row_to_submission(row) if row else None

    async def add(self, submission: Submission) -> None:
        row = SubmissionRow(
            id=submission.id,
            assignment_id=submission.assignment_id,
            student_id=submission.student_id,
            payload=submission.payload,
            grade=submission.grade,
            feedback=submission.feedback,
            submitted_at=submission.submitted_at,
            updated_at=submission.updated_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise ConflictError("assignment already submitted") from exc

    async def update_grade(
        self, submission_id: UUID, grade: int, feedback: str | None, updated_at: int
    ) -> Submission | None:
        stmt = (
            update(SubmissionRow)
            .where(SubmissionRow.id == submission_id)
            .values(grade=grade, feedback=feedback, updated_at=updated_at)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(submission_id)

    async def delete(self, submission_id: UUID) -> bool:
        stmt = delete(SubmissionRow).where(SubmissionRow.id == submission_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_for_assignment(self, assignment_id: UUID) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(SubmissionRow.assignment_id == assignment_id)
            .order_by(SubmissionRow.submitted_at.desc(), SubmissionRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_submission(r) for r in rows]

    async def count_pending(self, tutor_id: UUID | None) -> int:
        stmt = (
            select(func.count())
            .select_from(SubmissionRow)
            .where(SubmissionRow.grade.is_(None))
        )
        if tutor_id is not None:
            stmt = (
                stmt.join(AssignmentRow, AssignmentRow.id == SubmissionRow.assignment_id)
                .join(LessonRow, LessonRow.id == AssignmentRow.lesson_id)
                .join(CourseRow, CourseRow.id == LessonRow.course_id)
                .where(CourseRow.owner_id == tutor_id)
            )
        return (await self._session.execute(stmt)).scalar_one()

    async def count_pending_for_student(self, student_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(SubmissionRow)
            .where(SubmissionRow.student_id == student_id, SubmissionRow.grade.is_(None))
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def list_for_tutor(
        self, tutor_id: UUID | None, search: SubmissionSearch, pagination: Pagination
    ) -> tuple[list[SubmissionView], int]:
        conditions: list[ColumnElement[bool]] = []
        if tutor_id is not None:
            conditions.append(CourseRow.owner_id == tutor_id)
        if search.assignment_id is not None:
            conditions.append(SubmissionRow.assignment_id == search.assignment_id)
        if search.pending_only:
            conditions.append(SubmissionRow.grade.is_(None))
        if search.text:
            pattern = _like_pattern(search.text)
            conditions.append(
                or_(
                    UserRow.full_name.ilike(pattern, escape="\\"),
                    UserRow.email.ilike(pattern, escape="\\"),
                    AssignmentRow.title.ilike(pattern, escape="\\"),
                )
            )

        base = (
            select(SubmissionRow, UserRow, AssignmentRow, CourseRow)
            .join(UserRow, UserRow.id == SubmissionRow.student_id)
            .join(AssignmentRow, AssignmentRow.id == SubmissionRow.assignment_id)
            .join(LessonRow, LessonRow.id == AssignmentRow.lesson_id)
            .join(CourseRow, CourseRow.id == LessonRow.course_id)
            .where(*conditions)
        )
        count_stmt = select(func.count()).select_from(base.subquery())
        total = (await self._session.execute(count_stmt)).scalar_one()

        page_stmt = (
            base.order_by(SubmissionRow.submitted_at.desc(), SubmissionRow.id)
            .offset(pagination.offset)
            .limit(pagination.limit)
        )
        rows = (await self._session.execute(page_stmt)).all()
        return [
            SubmissionView(
                submission=_row_to_submission(s),
                student_name=u.full_name,
                student_email=u.email,
                assignment_title=a.title,
                course_id=c.id,
                course_title=c.title,
            )
            for s, u, a, c in rows
        ], total


def _row_to_submission(row: SubmissionRow) -> Submission:
    return Submission(
        id=row.id,
        assignment_id=row.assignment_id,
        student_id=row.student_id,
        payload=row.payload,
        submitted_at=row.submitted_at,
        updated_at=row.updated_at,
        grade=row.grade,
        feedback=row.feedback,
    )
