from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from tutoring.core.errors import ConflictError
from tutoring.models.page import Pagination
from tutoring.models.submission import Submission, SubmissionSearch, SubmissionView
from tutoring.repos.course_repo import InMemoryCourseRepo
from tutoring.repos.enrollment_repo import _contains
from tutoring.repos.user_repo import InMemoryUserRepo


class SubmissionRepo(Protocol):
    async def get(self, submission_id: UUID) -> Submission | None: ...
    async def add(self, submission: Submission) -> None: ...
    async def update_grade(
        self, submission_id: UUID, grade: int, feedback: str | None, updated_at: int
    ) -> Submission | None: ...
    async def delete(self, submission_id: UUID) -> bool: ...
    async def list_for_assignment(self, assignment_id: UUID) -> list[Submission]: ...
    async def count_pending(self, tutor_id: UUID | None) -> int: ...
    async def count_pending_for_student(self, student_id: UUID) -> int: ...
    async def list_for_tutor(
        self, tutor_id: UUID | None, search: SubmissionSearch, pagination: Pagination
    ) -> tuple[list[SubmissionView], int]: ...


class InMemorySubmissionRepo:
    def __init__(self, courses: InMemoryCourseRepo, users: InMemoryUserRepo) -> None:
        self._courses = courses
        self._users = users
        self._by_id: dict[UUID, Submission] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}

    async def get(self, submission_id: UUID) -> Submission | None:
        return self._by_id.get(submission_id)

    async def add(self, submission: Submission) -> None:
        key = (submission.assignment_id, submission.student_id)
        if key in self._by_pair:
            raise ConflictError("assignment already submitted")
        self._by_id[submission.id] = submission
        self._by_pair[key] = submission.id

    async def update_grade(
        self, submission_id: UUID, grade: int, feedback: str | None, updated_at: int
    ) -> Submission | None:
        existing = self._by_id.get(submission_id)
        if existing is None:
            return None
        updated = replace(existing, grade=grade, feedback=feedback, updated_at=updated_at)
        self._by_id[submission_id] = updated
        return updated

    async def delete(self, submission_id: UUID) -> bool:
        existing = self._by_id.pop(submission_id, None)
        if existing is None:
            return False
        self._by_pair.pop((existing.assignment_id, existing.student_id), None)
        return True

    async def list_for_assignment(self, assignment_id: UUID) -> list[Submission]:
        rows = [s for s in self._by_id.values() if s.assignment_id == assignment_id]
        return sorted(rows, key=lambda s: s.submitted_at, reverse=True)

    async def count_pending(self, tutor_id: UUID | None) -> int:
        owned = self._courses.course_ids_for_tutor(tutor_id)
        return sum(
            1
            for s in self._by_id.values()
            if s.grade is None
            and self._courses.course_id_for_assignment(s.assignment_id) in owned
        )

    async def count_pending_for_student(self, student_id: UUID) -> int:
        return sum(
            1 for s in self._by_id.values() if s.student_id == student_id and s.grade is None
        )

    async def list_for_tutor(
        self, tutor_id: UUID | None, search: SubmissionSearch, pagination: Pagination
    ) -> tuple[list[SubmissionView], int]:
        owned = self._courses.course_ids_for_tutor(tutor_id)
        views: list[SubmissionView] = []
        for submission in self._by_id.values():
            if search.assignment_id and submission.assignment_id != search.assignment_id:
                continue
            if search.pending_only and submission.is_graded:
                continue
            joined = self._courses.assignment_with_course(submission.assignment_id)
            if joined is None or joined[1].id not in owned:
                continue
            assignment, course = joined
            student = await self._users.get_by_id(submission.student_id)
            if student is None:
                continue
            if search.text and not any(
                _contains(field, search.text)
                for field in (student.full_name, student.email, assignment.title)
            ):
                continue
            views.append(
                SubmissionView(
                    submission=submission,
                    student_name=student.full_name,
                    student_email=student.email,
                    assignment_title=assignment.title,
                    course_id=course.id,
                    course_title=course.title,
                )
            )

        views.sort(key=lambda v: v.submission.submitted_at, reverse=True)
        start = pagination.offset
        return views[start : start + pagination.limit], len(views)

    def _dump(self) -> tuple[dict, dict]:
        return dict(self._by_id), dict(self._by_pair)

    def _load(self, state: tuple[dict, dict]) -> None:
        self._by_id, self._by_pair = state
