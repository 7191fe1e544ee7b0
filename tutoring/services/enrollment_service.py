"""Enrollment manager: who is enrolled where, and who may see it.

Every public method runs in exactly one unit of work.  Uniqueness of
(student, course) is left to the store's constraint; a losing concurrent
``enroll`` gets ConflictError from ``uow.enrollments.add``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from uuid import UUID

from tutoring.core.clock import Clock, epoch_seconds
from tutoring.core.errors import ConflictError, NotFoundError
from tutoring.core.metrics import ENROLLMENT_OPERATIONS
from tutoring.models.enrollment import Enrollment, EnrollmentSearch, EnrollmentView
from tutoring.models.page import Page, Pagination, validate_pagination
from tutoring.models.principal import Principal
from tutoring.repos.unit_of_work import UnitOfWork, UnitOfWorkFactory
from tutoring.services.authorization import (
    STUDENT,
    STUDENT_OR_TUTOR,
    TUTOR,
    authorize,
)
from tutoring.services.progress import refresh_progress

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = epoch_seconds) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def enroll(
        self, principal: Principal | None, student_id: UUID, course_id: UUID
    ) -> Enrollment:
        """Enroll ``student_id`` into ``course_id``.

        Students may only enroll themselves, and only into published
        courses; an unpublished course is reported as missing.  Tutors may
        enroll any student into a course they own, published or not.
        """
        principal = authorize(principal, STUDENT_OR_TUTOR)

        async with self._uow_factory() as uow:
            course = await uow.courses.get_course(course_id)

            if principal.has_role("student"):
                authorize(principal, STUDENT, lambda p: p.user_id == student_id)
                if course is None or not course.is_published:
                    raise NotFoundError("course", course_id)
            else:
                if course is None:
                    raise NotFoundError("course", course_id)
                authorize(principal, TUTOR, lambda p: p.user_id == course.owner_id)

            student = await uow.users.get_by_id(student_id)
            if student is None or student.role != "student":
                raise NotFoundError("student", student_id)

            enrollment = Enrollment.new(
                student_id=student_id, course_id=course_id, enrolled_at=self._clock()
            )
            try:
                await uow.enrollments.add(enrollment)
            except ConflictError:
                ENROLLMENT_OPERATIONS.labels(operation="enroll", result="conflict").inc()
                logger.warning(
                    "Duplicate enrollment rejected student_id=%s course_id=%s",
                    student_id,
                    course_id,
                )
                raise

        ENROLLMENT_OPERATIONS.labels(operation="enroll", result="ok").inc()
        logger.info(
            "Enrolled enrollment_id=%s student_id=%s course_id=%s by=%s",
            enrollment.id,
            student_id,
            course_id,
            principal.user_id,
        )
        return enrollment

    async def unenroll(self, principal: Principal | None, enrollment_id: UUID) -> None:
        """Student withdraws from a course.  Admin may act for any student."""
        principal = authorize(principal, STUDENT)

        async with self._uow_factory() as uow:
            enrollment = await uow.enrollments.get(enrollment_id, for_update=True)
            if enrollment is None:
                raise NotFoundError("enrollment", enrollment_id)
            authorize(principal, STUDENT, lambda p: p.user_id == enrollment.student_id)
            removed = await _delete_enrollment(uow, enrollment)

        ENROLLMENT_OPERATIONS.labels(operation="unenroll", result="ok").inc()
        logger.info(
            "Unenrolled enrollment_id=%s completions_removed=%d by=%s",
            enrollment_id,
            removed,
            principal.user_id,
        )

    async def remove_student(
        self, principal: Principal | None, course_id: UUID, student_id: UUID
    ) -> None:
        """Owning tutor (or admin) removes a student from a course."""
        principal = authorize(principal, TUTOR)

        async with self._uow_factory() as uow:
            owner_id = await uow.courses.get_course_owner(course_id)
            if owner_id is None:
                raise NotFoundError("course", course_id)
            authorize(principal, TUTOR, lambda p: p.user_id == owner_id)

            enrollment = await uow.enrollments.get_by_pair(student_id, course_id)
            if enrollment is None:
                raise NotFoundError("enrollment")
            removed = await _delete_enrollment(uow, enrollment)

        ENROLLMENT_OPERATIONS.labels(operation="remove", result="ok").inc()
        logger.info(
            "Student removed enrollment_id=%s course_id=%s student_id=%s "
            "completions_removed=%d by=%s",
            enrollment.id,
            course_id,
            student_id,
            removed,
            principal.user_id,
        )

    async def list_for_course(
        self,
        principal: Principal | None,
        course_id: UUID,
        pagination: Pagination,
        search: EnrollmentSearch | None = None,
    ) -> Page[EnrollmentView]:
        principal = authorize(principal, TUTOR)
        validate_pagination(pagination)
        search = search or EnrollmentSearch()

        async with self._uow_factory() as uow:
            course = await uow.courses.get_course(course_id)
            if course is None:
                raise NotFoundError("course", course_id)
            authorize(principal, TUTOR, lambda p: p.user_id == course.owner_id)

            rows, total = await uow.enrollments.list_for_course(
                course_id, search, pagination
            )
            items: list[EnrollmentView] = []
            for enrollment, student in rows:
                completed, lessons, percent = await refresh_progress(uow, enrollment)
                items.append(
                    EnrollmentView(
                        enrollment=replace(enrollment, progress_percent=percent),
                        student_name=student.full_name,
                        student_email=student.email,
                        course_title=course.title,
                        completed_lessons=completed,
                        total_lessons=lessons,
                    )
                )

        return Page(items=items, page=pagination.page, limit=pagination.limit, total=total)

    async def list_for_tutor(
        self,
        principal: Principal | None,
        pagination: Pagination,
        search: EnrollmentSearch | None = None,
        course_id: UUID | None = None,
    ) -> Page[EnrollmentView]:
        """Enrollments across every course the tutor owns, newest first.

        Admins see the whole platform.  ``course_id`` narrows the listing to
        one course, which must exist and be owned by the caller.
        """
        principal = authorize(principal, TUTOR)
        validate_pagination(pagination)
        search = search or EnrollmentSearch()
        scope = None if principal.is_admin() else principal.user_id

        async with self._uow_factory() as uow:
            if course_id is not None:
                course = await uow.courses.get_course(course_id)
                if course is None:
                    raise NotFoundError("course", course_id)
                authorize(principal, TUTOR, lambda p: p.user_id == course.owner_id)

            rows, total = await uow.enrollments.list_for_tutor(
                scope, search, pagination, course_id
            )
            items: list[EnrollmentView] = []
            for enrollment, student, course in rows:
                completed, lessons, percent = await refresh_progress(uow, enrollment)
                items.append(
                    EnrollmentView(
                        enrollment=replace(enrollment, progress_percent=percent),
                        student_name=student.full_name,
                        student_email=student.email,
                        course_title=course.title,
                        completed_lessons=completed,
                        total_lessons=lessons,
                    )
                )

        return Page(items=items, page=pagination.page, limit=pagination.limit, total=total)

    async def get_enrollment(
        self, principal: Principal | None, enrollment_id: UUID
    ) -> EnrollmentView:
        """Visible to the enrolled student, the course's tutor and admins."""
        principal = authorize(principal, STUDENT_OR_TUTOR)

        async with self._uow_factory() as uow:
            enrollment = await uow.enrollments.get(enrollment_id)
            if enrollment is None:
                raise NotFoundError("enrollment", enrollment_id)
            course = await uow.courses.get_course(enrollment.course_id)
            if course is None:
                raise NotFoundError("course", enrollment.course_id)
            authorize(
                principal,
                STUDENT_OR_TUTOR,
                lambda p: p.user_id in (enrollment.student_id, course.owner_id),
            )
            student = await uow.users.get_by_id(enrollment.student_id)
            if student is None:
                raise NotFoundError("student", enrollment.student_id)
            completed, total, percent = await refresh_progress(uow, enrollment)

        return EnrollmentView(
            enrollment=replace(enrollment, progress_percent=percent),
            student_name=student.full_name,
            student_email=student.email,
            course_title=course.title,
            completed_lessons=completed,
            total_lessons=total,
        )

    async def list_for_student(self, principal: Principal | None) -> list[EnrollmentView]:
        """The calling student's own enrollments, newest first."""
        principal = authorize(principal, STUDENT)

        async with self._uow_factory() as uow:
            student = await uow.users.get_by_id(principal.user_id)
            if student is None:
                raise NotFoundError("student", principal.user_id)
            views: list[EnrollmentView] = []
            for enrollment in await uow.enrollments.list_for_student(principal.user_id):
                course = await uow.courses.get_course(enrollment.course_id)
                if course is None:
                    continue
                completed, total, percent = await refresh_progress(uow, enrollment)
                views.append(
                    EnrollmentView(
                        enrollment=replace(enrollment, progress_percent=percent),
                        student_name=student.full_name,
                        student_email=student.email,
                        course_title=course.title,
                        completed_lessons=completed,
                        total_lessons=total,
                    )
                )
        return views


async def _delete_enrollment(uow: UnitOfWork, enrollment: Enrollment) -> int:
    # Completions first, then the enrollment: both or neither
    removed = await uow.completions.delete_for_enrollment(enrollment.id)
    if not await uow.enrollments.delete(enrollment.id):
        raise NotFoundError("enrollment", enrollment.id)
    return removed
