"""Request and response bodies for the /v1 routes."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field, StrictInt

from tutoring.models.enrollment import Enrollment, EnrollmentView
from tutoring.models.submission import Submission, SubmissionView
from tutoring.services.completion_service import CompletionResult, LessonStatus
from tutoring.services.dashboard_service import EnrollmentStats


class EnrollIn(BaseModel):
    student_id: UUID
    course_id: UUID


class EnrollmentOut(BaseModel):
    id: UUID
    student_id: UUID
    course_id: UUID
    enrolled_at: int
    progress_percent: int

    @staticmethod
    def from_model(e: Enrollment) -> EnrollmentOut:
        return EnrollmentOut(
            id=e.id,
            student_id=e.student_id,
            course_id=e.course_id,
            enrolled_at=e.enrolled_at,
            progress_percent=e.progress_percent,
        )


class EnrollmentViewOut(EnrollmentOut):
    student_name: str
    student_email: str
    course_title: str
    completed_lessons: int
    total_lessons: int

    @staticmethod
    def from_view(v: EnrollmentView) -> EnrollmentViewOut:
        e = v.enrollment
        return EnrollmentViewOut(
            id=e.id,
            student_id=e.student_id,
            course_id=e.course_id,
            enrolled_at=e.enrolled_at,
            progress_percent=e.progress_percent,
            student_name=v.student_name,
            student_email=v.student_email,
            course_title=v.course_title,
            completed_lessons=v.completed_lessons,
            total_lessons=v.total_lessons,
        )


class EnrollmentPageOut(BaseModel):
    items: list[EnrollmentViewOut]
    page: int
    limit: int
    total: int
    pages: int


class CompletionOut(BaseModel):
    enrollment_id: UUID
    lesson_id: UUID
    completed: bool
    completed_at: int | None
    progress_percent: int
    changed: bool

    @staticmethod
    def from_result(r: CompletionResult) -> CompletionOut:
        return CompletionOut(
            enrollment_id=r.enrollment_id,
            lesson_id=r.lesson_id,
            completed=r.completed,
            completed_at=r.completed_at,
            progress_percent=r.progress_percent,
            changed=r.changed,
        )


class LessonStatusOut(BaseModel):
    lesson_id: UUID
    title: str
    order_index: int
    completed: bool
    completed_at: int | None

    @staticmethod
    def from_status(s: LessonStatus) -> LessonStatusOut:
        return LessonStatusOut(
            lesson_id=s.lesson_id,
            title=s.title,
            order_index=s.order_index,
            completed=s.completed,
            completed_at=s.completed_at,
        )


class SubmitIn(BaseModel):
    payload: str = Field(default="", max_length=100_000)


class GradeIn(BaseModel):
    grade: StrictInt
    feedback: str | None = Field(default=None, max_length=10_000)


class SubmissionOut(BaseModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    payload: str
    grade: int | None
    feedback: str | None
    submitted_at: int
    updated_at: int

    @staticmethod
    def from_model(s: Submission) -> SubmissionOut:
        return SubmissionOut(
            id=s.id,
            assignment_id=s.assignment_id,
            student_id=s.student_id,
            payload=s.payload,
            grade=s.grade,
            feedback=s.feedback,
            submitted_at=s.submitted_at,
            updated_at=s.updated_at,
        )


class SubmissionViewOut(SubmissionOut):
    student_name: str
    student_email: str
    assignment_title: str
    course_id: UUID
    course_title: str

    @staticmethod
    def from_view(v: SubmissionView) -> SubmissionViewOut:
        s = v.submission
        return SubmissionViewOut(
            id=s.id,
            assignment_id=s.assignment_id,
            student_id=s.student_id,
            payload=s.payload,
            grade=s.grade,
            feedback=s.feedback,
            submitted_at=s.submitted_at,
            updated_at=s.updated_at,
            student_name=v.student_name,
            student_email=v.student_email,
            assignment_title=v.assignment_title,
            course_id=v.course_id,
            course_title=v.course_title,
        )


class SubmissionPageOut(BaseModel):
    items: list[SubmissionViewOut]
    page: int
    limit: int
    total: int
    pages: int


class PendingCountOut(BaseModel):
    pending: int


class TutorSummaryOut(BaseModel):
    courses: int
    lessons: int
    enrollments: int
    students: int
    pending_submissions: int


class CourseEnrollmentCountOut(BaseModel):
    course_id: UUID
    course_title: str
    enrollment_count: int


class EnrollmentStatsOut(BaseModel):
    total_enrollments: int
    unique_students: int
    by_course: list[CourseEnrollmentCountOut]

    @staticmethod
    def from_stats(s: EnrollmentStats) -> EnrollmentStatsOut:
        return EnrollmentStatsOut(
            total_enrollments=s.total_enrollments,
            unique_students=s.unique_students,
            by_course=[
                CourseEnrollmentCountOut(
                    course_id=c.course_id,
                    course_title=c.course_title,
                    enrollment_count=c.enrollment_count,
                )
                for c in s.by_course
            ],
        )


class StudentSummaryOut(BaseModel):
    enrollments: int
    completed_courses: int
    pending_submissions: int
    total_assignments: int
