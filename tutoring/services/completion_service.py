"""Lesson completion tracker.

Completion toggles and the enrollment's progress percentage are written
in the same unit of work.  In PostgreSQL the enrollment row is locked
FOR UPDATE first, so two concurrent toggles on one enrollment serialise
and the second one recomputes from the first one's committed state.

Re-marking a completed lesson changes nothing: the original
``completed_at`` is kept and no write is issued.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from tutoring.core.clock import Clock, epoch_seconds
from tutoring.core.errors import ForbiddenError, NotFoundError
from tutoring.core.metrics import LESSON_COMPLETIONS
from tutoring.models.enrollment import Enrollment
from tutoring.models.principal import Principal
from tutoring.repos.unit_of_work import UnitOfWork, UnitOfWorkFactory
from tutoring.services.authorization import STUDENT, STUDENT_OR_TUTOR, authorize
from tutoring.services.progress import refresh_progress

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompletionResult:
    enrollment_id: UUID
    lesson_id: UUID
    completed: bool
    completed_at: int | None
    progress_percent: int
    changed: bool


@dataclass(frozen=True, slots=True)
class LessonStatus:
    lesson_id: UUID
    title: str
    order_index: int
    completed: bool
    completed_at: int | None


class CompletionTracker:
    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = epoch_seconds) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def mark_complete(
        self, principal: Principal | None, enrollment_id: UUID, lesson_id: UUID
    ) -> CompletionResult:
        principal = authorize(principal, STUDENT)

        async with self._uow_factory() as uow:
            enrollment = await self._load_for_toggle(uow, principal, enrollment_id, lesson_id)
            row, changed = await uow.completions.upsert_completed(
                enrollment.id, lesson_id, self._clock()
            )
            _, _, percent = await refresh_progress(uow, enrollment, locked=True)

        LESSON_COMPLETIONS.labels(action="completed" if changed else "repeated").inc()
        logger.info(
            "Lesson completed enrollment_id=%s lesson_id=%s changed=%s progress=%d",
            enrollment_id,
            lesson_id,
            changed,
            percent,
        )
        return CompletionResult(
            enrollment_id=enrollment_id,
            lesson_id=lesson_id,
            completed=row.completed,
            completed_at=row.completed_at,
            progress_percent=percent,
            changed=changed,
        )

    async def mark_incomplete(
        self, principal: Principal | None, enrollment_id: UUID, lesson_id: UUID
    ) -> CompletionResult:
        principal = authorize(principal, STUDENT)

        async with self._uow_factory() as uow:
            enrollment = await self._load_for_toggle(uow, principal, enrollment_id, lesson_id)
            before = await uow.completions.get(enrollment.id, lesson_id)
            changed = before is not None and before.completed
            if changed:
                await uow.completions.clear(enrollment.id, lesson_id)
            _, _, percent = await refresh_progress(uow, enrollment, locked=True)

        if changed:
            LESSON_COMPLETIONS.labels(action="cleared").inc()
        logger.info(
            "Lesson marked incomplete enrollment_id=%s lesson_id=%s changed=%s progress=%d",
            enrollment_id,
            lesson_id,
            changed,
            percent,
        )
        return CompletionResult(
            enrollment_id=enrollment_id,
            lesson_id=lesson_id,
            completed=False,
            completed_at=None,
            progress_percent=percent,
            changed=changed,
        )

    async def lesson_statuses(
        self, principal: Principal | None, enrollment_id: UUID
    ) -> list[LessonStatus]:
        """The course's lessons in order, each flagged for this enrollment."""
        principal = authorize(principal, STUDENT_OR_TUTOR)

        async with self._uow_factory() as uow:
            enrollment = await uow.enrollments.get(enrollment_id)
            if enrollment is None:
                raise NotFoundError("enrollment", enrollment_id)
            owner_id = await uow.courses.get_course_owner(enrollment.course_id)
            authorize(
                principal,
                STUDENT_OR_TUTOR,
                lambda p: p.user_id in (enrollment.student_id, owner_id),
            )
            lessons = await uow.courses.list_lessons(enrollment.course_id)
            rows = {
                row.lesson_id: row
                for row in await uow.completions.list_for_enrollment(enrollment.id)
            }

        statuses: list[LessonStatus] = []
        for lesson in lessons:
            row = rows.get(lesson.id)
            done = row is not None and row.completed
            statuses.append(
                LessonStatus(
                    lesson_id=lesson.id,
                    title=lesson.title,
                    order_index=lesson.order_index,
                    completed=done,
                    completed_at=row.completed_at if done and row else None,
                )
            )
        return statuses

    async def _load_for_toggle(
        self,
        uow: UnitOfWork,
        principal: Principal,
        enrollment_id: UUID,
        lesson_id: UUID,
    ) -> Enrollment:
        enrollment = await uow.enrollments.get(enrollment_id, for_update=True)
        if enrollment is None:
            raise NotFoundError("enrollment", enrollment_id)
        authorize(principal, STUDENT, lambda p: p.user_id == enrollment.student_id)

        lesson_course = await uow.courses.get_lesson_course(lesson_id)
        if lesson_course is None:
            raise NotFoundError("lesson", lesson_id)
        if lesson_course != enrollment.course_id:
            logger.warning(
                "Lesson outside enrollment course enrollment_id=%s lesson_id=%s",
                enrollment_id,
                lesson_id,
            )
            raise ForbiddenError("lesson does not belong to the enrolled course")
        return enrollment
