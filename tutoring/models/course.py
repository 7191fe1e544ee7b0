from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    owner_id: UUID  # the tutor
    title: str
    is_published: bool = False

    @staticmethod
    def new(*, owner_id: UUID, title: str, is_published: bool = False) -> Course:
        return Course(
            id=uuid4(), owner_id=owner_id, title=title, is_published=is_published
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    order_index: int
    title: str = ""
    created_at: int = 0

    @staticmethod
    def new(
        *, course_id: UUID, order_index: int, title: str = "", created_at: int = 0
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            order_index=order_index,
            title=title,
            created_at=created_at,
        )


@dataclass(frozen=True, slots=True)
class Assignment:
    id: UUID
    lesson_id: UUID
    title: str = ""
    max_score: int = 100

    @staticmethod
    def new(*, lesson_id: UUID, title: str = "", max_score: int = 100) -> Assignment:
        if max_score <= 0:
            raise ValueError("max_score must be a positive integer")
        return Assignment(
            id=uuid4(), lesson_id=lesson_id, title=title, max_score=max_score
        )


@dataclass(frozen=True, slots=True)
class AssignmentContext:
    """An assignment resolved upward to the course that owns it."""

    assignment_id: UUID
    lesson_id: UUID
    course_id: UUID
    tutor_id: UUID
    max_score: int
