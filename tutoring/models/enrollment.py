from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: UUID
    student_id: UUID
    course_id: UUID
    enrolled_at: int
    progress_percent: int = 0

    @staticmethod
    def new(*, student_id: UUID, course_id: UUID, enrolled_at: int) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            student_id=student_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
        )


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    id: UUID
    enrollment_id: UUID
    lesson_id: UUID
    completed: bool = True
    completed_at: int | None = None

    @staticmethod
    def new(*, enrollment_id: UUID, lesson_id: UUID, completed_at: int) -> LessonCompletion:
        return LessonCompletion(
            id=uuid4(),
            enrollment_id=enrollment_id,
            lesson_id=lesson_id,
            completed=True,
            completed_at=completed_at,
        )


@dataclass(frozen=True, slots=True)
class EnrollmentView:
    """Read model: an enrollment joined with its student and course."""

    enrollment: Enrollment
    student_name: str
    student_email: str
    course_title: str
    completed_lessons: int
    total_lessons: int


@dataclass(frozen=True, slots=True)
class EnrollmentSearch:
    """Filters for listing a course's enrollments.

    ``student`` matches full name OR email; ``course_title`` matches the
    course title; ``text`` matches any of the three.  All are
    case-insensitive substrings and the provided ones are ANDed.
    """

    student: str | None = None
    course_title: str | None = None
    text: str | None = None
