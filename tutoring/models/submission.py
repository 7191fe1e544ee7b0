from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Submission:
    id: UUID
    assignment_id: UUID
    student_id: UUID
    payload: str
    submitted_at: int
    updated_at: int
    grade: int | None = None
    feedback: str | None = None

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    @staticmethod
    def new(
        *, assignment_id: UUID, student_id: UUID, payload: str, submitted_at: int
    ) -> Submission:
        return Submission(
            id=uuid4(),
            assignment_id=assignment_id,
            student_id=student_id,
            payload=payload,
            submitted_at=submitted_at,
            updated_at=submitted_at,
        )


@dataclass(frozen=True, slots=True)
class SubmissionSearch:
    """Filters for a tutor's submission inbox.

    ``text`` matches the student's name or email, or the assignment title.
    """

    text: str | None = None
    assignment_id: UUID | None = None
    pending_only: bool = False


@dataclass(frozen=True, slots=True)
class SubmissionView:
    """Read model: a submission with its student, assignment and course."""

    submission: Submission
    student_name: str
    student_email: str
    assignment_title: str
    course_id: UUID
    course_title: str
