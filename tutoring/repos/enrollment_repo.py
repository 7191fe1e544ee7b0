from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from tutoring.core.errors import ConflictError
from tutoring.models.course import Course
from tutoring.models.enrollment import Enrollment, EnrollmentSearch
from tutoring.models.page import Pagination
from tutoring.models.user import User
from tutoring.repos.course_repo import InMemoryCourseRepo
from tutoring.repos.user_repo import InMemoryUserRepo


class EnrollmentRepo(Protocol):
    async def get(
        self, enrollment_id: UUID, *, for_update: bool = False
    ) -> Enrollment | None: ...
    async def get_by_pair(self, student_id: UUID, course_id: UUID) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def delete(self, enrollment_id: UUID) -> bool: ...
    async def set_progress(self, enrollment_id: UUID, percent: int) -> None: ...
    async def list_for_course(
        self, course_id: UUID, search: EnrollmentSearch, pagination: Pagination
    ) -> tuple[list[tuple[Enrollment, User]], int]: ...
    async def list_for_tutor(
        self,
        tutor_id: UUID | None,
        search: EnrollmentSearch,
        pagination: Pagination,
        course_id: UUID | None = None,
    ) -> tuple[list[tuple[Enrollment, User, Course]], int]: ...
    async def list_for_student(self, student_id: UUID) -> list[Enrollment]: ...
    async def count_for_tutor(self, tutor_id: UUID | None) -> int: ...
    async def count_students_for_tutor(self, tutor_id: UUID | None) -> int: ...
    async def counts_by_course(self, tutor_id: UUID | None) -> list[tuple[Course, int]]: ...


class InMemoryEnrollmentRepo:
    def __init__(self, users: InMemoryUserRepo, courses: InMemoryCourseRepo) -> None:
        self._users = users
        self._courses = courses
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}

    async def get(
        self, enrollment_id: UUID, *, for_update: bool = False
    ) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def get_by_pair(self, student_id: UUID, course_id: UUID) -> Enrollment | None:
        enrollment_id = self._by_pair.get((student_id, course_id))
        return self._by_id.get(enrollment_id) if enrollment_id else None

    async def add(self, enrollment: Enrollment) -> None:
        # Unique (student_id, course_id): the store's constraint, not a pre-check
        key = (enrollment.student_id, enrollment.course_id)
        if key in self._by_pair:
            raise ConflictError("student is already enrolled in this course")
        self._by_id[enrollment.id] = enrollment
        self._by_pair[key] = enrollment.id

    async def delete(self, enrollment_id: UUID) -> bool:
        enrollment = self._by_id.pop(enrollment_id, None)
        if enrollment is None:
            return False
        self._by_pair.pop((enrollment.student_id, enrollment.course_id), None)
        return True

    async def set_progress(self, enrollment_id: UUID, percent: int) -> None:
        existing = self._by_id.get(enrollment_id)
        if existing is None:
            raise KeyError("enrollment not found")
        self._by_id[enrollment_id] = replace(existing, progress_percent=percent)

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
        owned = {c.id: c for c in self._courses.courses_for_tutor(tutor_id)}
        rows: list[tuple[Enrollment, User, Course]] = []
        for enrollment in self._by_id.values():
            course = owned.get(enrollment.course_id)
            if course is None or (course_id is not None and course.id != course_id):
                continue
            student = await self._users.get_by_id(enrollment.student_id)
            if student is None or not _matches(search, student, course):
                continue
            rows.append((enrollment, student, course))

        # Stable sort: equal enrolled_at keeps insertion order
        rows.sort(key=lambda r: r[0].enrolled_at, reverse=True)
        start = pagination.offset
        return rows[start : start + pagination.limit], len(rows)

    async def list_for_student(self, student_id: UUID) -> list[Enrollment]:
        rows = [e for e in self._by_id.values() if e.student_id == student_id]
        return sorted(rows, key=lambda e: e.enrolled_at, reverse=True)

    async def count_for_tutor(self, tutor_id: UUID | None) -> int:
        owned = self._courses.course_ids_for_tutor(tutor_id)
        return sum(1 for e in self._by_id.values() if e.course_id in owned)

    async def count_students_for_tutor(self, tutor_id: UUID | None) -> int:
        owned = self._courses.course_ids_for_tutor(tutor_id)
        return len({e.student_id for e in self._by_id.values() if e.course_id in owned})

    async def counts_by_course(self, tutor_id: UUID | None) -> list[tuple[Course, int]]:
        counts = {c.id: 0 for c in self._courses.courses_for_tutor(tutor_id)}
        for enrollment in self._by_id.values():
            if enrollment.course_id in counts:
                counts[enrollment.course_id] += 1
        courses = sorted(self._courses.courses_for_tutor(tutor_id), key=lambda c: c.title)
        return [(c, counts[c.id]) for c in courses]

    def _dump(self) -> tuple[dict, dict]:
        return dict(self._by_id), dict(self._by_pair)

    def _load(self, state: tuple[dict, dict]) -> None:
        self._by_id, self._by_pair = state


def _contains(haystack: str, needle: str) -> bool:
    return needle.casefold() in haystack.casefold()


def _matches(search: EnrollmentSearch, student: User, course: Course) -> bool:
    if search.student and not (
        _contains(student.full_name, search.student)
        or _contains(student.email, search.student)
    ):
        return False
    if search.course_title and not _contains(course.title, search.course_title):
        return False
    if search.text and not any(
        _contains(field, search.text)
        for field in (student.full_name, student.email, course.title)
    ):
        return False
    return True
