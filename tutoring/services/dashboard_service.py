"""Tutor and student dashboard counts.

Dashboards are read-only.  Each one runs in a single snapshot unit of
work so its counts agree with one another, and none of them rewrites a
drifted progress value; that is left to the enrollment reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from tutoring.models.principal import Principal
from tutoring.repos.unit_of_work import UnitOfWorkFactory
from tutoring.services.authorization import STUDENT, TUTOR, authorize
from tutoring.services.progress import count_progress


@dataclass(frozen=True, slots=True)
class TutorSummary:
    courses: int
    lessons: int
    enrollments: int
    students: int
    pending_submissions: int


@dataclass(frozen=True, slots=True)
class CourseEnrollmentCount:
    course_id: UUID
    course_title: str
    enrollment_count: int


@dataclass(frozen=True, slots=True)
class EnrollmentStats:
    total_enrollments: int
    unique_students: int
    by_course: list[CourseEnrollmentCount]


@dataclass(frozen=True, slots=True)
class StudentSummary:
    enrollments: int
    completed_courses: int
    pending_submissions: int
    total_assignments: int


class DashboardService:
    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def tutor_summary(self, principal: Principal | None) -> TutorSummary:
        """Tutors see their own courses; admins see the whole platform."""
        principal = authorize(principal, TUTOR)
        scope = None if principal.is_admin() else principal.user_id
        async with self._uow_factory(read_snapshot=True) as uow:
            return TutorSummary(
                courses=await uow.courses.count_courses(scope),
                lessons=await uow.courses.count_lessons_for_tutor(scope),
                enrollments=await uow.enrollments.count_for_tutor(scope),
                students=await uow.enrollments.count_students_for_tutor(scope),
                pending_submissions=await uow.submissions.count_pending(scope),
            )

    async def enrollment_stats(self, principal: Principal | None) -> EnrollmentStats:
        """Per-course enrollment counts, courses with none included, by title."""
        principal = authorize(principal, TUTOR)
        scope = None if principal.is_admin() else principal.user_id
        async with self._uow_factory(read_snapshot=True) as uow:
            counts = await uow.enrollments.counts_by_course(scope)
            students = await uow.enrollments.count_students_for_tutor(scope)

        by_course = [
            CourseEnrollmentCount(
                course_id=course.id, course_title=course.title, enrollment_count=count
            )
            for course, count in counts
        ]
        return EnrollmentStats(
            total_enrollments=sum(c.enrollment_count for c in by_course),
            unique_students=students,
            by_course=by_course,
        )

    async def student_summary(self, principal: Principal | None) -> StudentSummary:
        """The calling student's own counts.

        A course counts as completed once every one of its lessons is
        completed; a course with no lessons never does.
        """
        principal = authorize(principal, STUDENT)
        async with self._uow_factory(read_snapshot=True) as uow:
            enrollments = await uow.enrollments.list_for_student(principal.user_id)
            completed_courses = 0
            total_assignments = 0
            for enrollment in enrollments:
                _, lessons, percent = await count_progress(uow, enrollment)
                if lessons and percent == 100:
                    completed_courses += 1
                total_assignments += await uow.courses.count_assignments(enrollment.course_id)
            pending = await uow.submissions.count_pending_for_student(principal.user_id)

        return StudentSummary(
            enrollments=len(enrollments),
            completed_courses=completed_courses,
            pending_submissions=pending,
            total_assignments=total_assignments,
        )
