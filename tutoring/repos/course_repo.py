"""Content store: courses, lessons and assignments.

The core only reads content (ownership, lesson counts, assignment
context).  ``add_*`` exist so dev tooling and tests can seed a store;
content CRUD proper belongs to another service.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from tutoring.models.course import Assignment, AssignmentContext, Course, Lesson


class CourseRepo(Protocol):
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_course_owner(self, course_id: UUID) -> UUID | None: ...
    async def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    async def get_lesson_course(self, lesson_id: UUID) -> UUID | None: ...
    async def list_lessons(self, course_id: UUID) -> list[Lesson]: ...
    async def count_lessons(self, course_id: UUID) -> int: ...
    async def get_assignment_context(
        self, assignment_id: UUID, *, for_update: bool = False
    ) -> AssignmentContext | None: ...
    async def count_courses(self, tutor_id: UUID | None) -> int: ...
    async def count_lessons_for_tutor(self, tutor_id: UUID | None) -> int: ...
    async def count_assignments(self, course_id: UUID) -> int: ...
    async def add_course(self, course: Course) -> None: ...
    async def add_lesson(self, lesson: Lesson) -> None: ...
    async def add_assignment(self, assignment: Assignment) -> None: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        # dict order is insertion order: used as the order_index tie-breaker
        self._lessons: dict[UUID, Lesson] = {}
        self._assignments: dict[UUID, Assignment] = {}

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_course_owner(self, course_id: UUID) -> UUID | None:
        course = self._courses.get(course_id)
        return course.owner_id if course else None

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    async def get_lesson_course(self, lesson_id: UUID) -> UUID | None:
        lesson = self._lessons.get(lesson_id)
        return lesson.course_id if lesson else None

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        lessons = [le for le in self._lessons.values() if le.course_id == course_id]
        return sorted(lessons, key=lambda le: le.order_index)  # stable

    async def count_lessons(self, course_id: UUID) -> int:
        return sum(1 for le in self._lessons.values() if le.course_id == course_id)

    async def get_assignment_context(
        self, assignment_id: UUID, *, for_update: bool = False
    ) -> AssignmentContext | None:
        assignment = self._assignments.get(assignment_id)
        if assignment is None:
            return None
        lesson = self._lessons.get(assignment.lesson_id)
        if lesson is None:
            return None
        course = self._courses.get(lesson.course_id)
        if course is None:
            return None
        return AssignmentContext(
            assignment_id=assignment.id,
            lesson_id=lesson.id,
            course_id=course.id,
            tutor_id=course.owner_id,
            max_score=assignment.max_score,
        )

    async def count_courses(self, tutor_id: UUID | None) -> int:
        return sum(1 for c in self._courses.values() if _owned(c, tutor_id))

    async def count_lessons_for_tutor(self, tutor_id: UUID | None) -> int:
        owned = {c.id for c in self._courses.values() if _owned(c, tutor_id)}
        return sum(1 for le in self._lessons.values() if le.course_id in owned)

    async def count_assignments(self, course_id: UUID) -> int:
        lesson_ids = {le.id for le in self._lessons.values() if le.course_id == course_id}
        return sum(1 for a in self._assignments.values() if a.lesson_id in lesson_ids)

    async def add_course(self, course: Course) -> None:
        self._courses[course.id] = course

    async def add_lesson(self, lesson: Lesson) -> None:
        if lesson.course_id not in self._courses:
            raise KeyError("course not found")
        self._lessons[lesson.id] = lesson

    async def add_assignment(self, assignment: Assignment) -> None:
        if assignment.lesson_id not in self._lessons:
            raise KeyError("lesson not found")
        self._assignments[assignment.id] = assignment

    # --- helpers used by sibling in-memory repos (joins) ---

    def course_ids_for_tutor(self, tutor_id: UUID | None) -> set[UUID]:
        return {c.id for c in self._courses.values() if _owned(c, tutor_id)}

    def courses_for_tutor(self, tutor_id: UUID | None) -> list[Course]:
        return [c for c in self._courses.values() if _owned(c, tutor_id)]

    def assignment_with_course(self, assignment_id: UUID) -> tuple[Assignment, Course] | None:
        assignment = self._assignments.get(assignment_id)
        if assignment is None:
            return None
        lesson = self._lessons.get(assignment.lesson_id)
        course = self._courses.get(lesson.course_id) if lesson else None
        return (assignment, course) if course else None

    def course_id_for_assignment(self, assignment_id: UUID) -> UUID | None:
        assignment = self._assignments.get(assignment_id)
        if assignment is None:
            return None
        lesson = self._lessons.get(assignment.lesson_id)
        return lesson.course_id if lesson else None

    def _dump(self) -> tuple[dict, dict, dict]:
        return dict(self._courses), dict(self._lessons), dict(self._assignments)

    def _load(self, state: tuple[dict, dict, dict]) -> None:
        self._courses, self._lessons, self._assignments = state


def _owned(course: Course, tutor_id: UUID | None) -> bool:
    return tutor_id is None or course.owner_id == tutor_id
