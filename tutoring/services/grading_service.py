"""Submission grading ledger.

One submission per (assignment, student).  A second submit is a
ConflictError until an owning tutor or admin deletes the first one.
Grades must lie in ``[0, max_score]`` of the assignment as read, under
a row lock, in the same transaction as the write.
"""

from __future__ import annotations

import logging
from uuid import UUID

from tutoring.core.clock import Clock, epoch_seconds
from tutoring.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from tutoring.core.metrics import GRADING_OPERATIONS
from tutoring.models.page import Page, Pagination, validate_pagination
from tutoring.models.principal import Principal
from tutoring.models.submission import Submission, SubmissionSearch, SubmissionView
from tutoring.repos.unit_of_work import UnitOfWorkFactory
from tutoring.services.authorization import STUDENT, TUTOR, authorize

logger = logging.getLogger(__name__)


class GradingLedger:
    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = epoch_seconds) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def submit(
        self, principal: Principal | None, assignment_id: UUID, payload: str
    ) -> Submission:
        principal = authorize(principal, STUDENT)

        async with self._uow_factory() as uow:
            ctx = await uow.courses.get_assignment_context(assignment_id)
            if ctx is None:
                raise NotFoundError("assignment", assignment_id)
            enrollment = await uow.enrollments.get_by_pair(principal.user_id, ctx.course_id)
            if enrollment is None:
                logger.warning(
                    "Submission rejected: not enrolled student_id=%s course_id=%s",
                    principal.user_id,
                    ctx.course_id,
                )
                raise ForbiddenError("not enrolled in this course")

            submission = Submission.new(
                assignment_id=assignment_id,
                student_id=principal.user_id,
                payload=payload,
                submitted_at=self._clock(),
            )
            try:
                await uow.submissions.add(submission)
            except ConflictError:
                GRADING_OPERATIONS.labels(operation="submit", result="conflict").inc()
                logger.warning(
                    "Duplicate submission rejected assignment_id=%s student_id=%s",
                    assignment_id,
                    principal.user_id,
                )
                raise

        GRADING_OPERATIONS.labels(operation="submit", result="ok").inc()
        logger.info(
            "Submission recorded submission_id=%s assignment_id=%s student_id=%s",
            submission.id,
            assignment_id,
            principal.user_id,
        )
        return submission

    async def grade(
        self,
        principal: Principal | None,
        submission_id: UUID,
        grade: int,
        feedback: str | None = None,
    ) -> Submission:
        """Set (or overwrite) a grade.  No history is kept."""
        principal = authorize(principal, TUTOR)
        if isinstance(grade, bool) or not isinstance(grade, int):
            GRADING_OPERATIONS.labels(operation="grade", result="invalid").inc()
            raise ValidationError("grade must be an integer")

        async with self._uow_factory() as uow:
            submission = await uow.submissions.get(submission_id)
            if submission is None:
                raise NotFoundError("submission", submission_id)
            ctx = await uow.courses.get_assignment_context(
                submission.assignment_id, for_update=True
            )
            if ctx is None:
                raise NotFoundError("assignment", submission.assignment_id)
            authorize(principal, TUTOR, lambda p: p.user_id == ctx.tutor_id)

            if not 0 <= grade <= ctx.max_score:
                GRADING_OPERATIONS.labels(operation="grade", result="invalid").inc()
                logger.warning(
                    "Grade out of range submission_id=%s grade=%d max_score=%d",
                    submission_id,
                    grade,
                    ctx.max_score,
                )
                raise ValidationError(f"grade must be between 0 and {ctx.max_score}")

            updated = await uow.submissions.update_grade(
                submission_id, grade, feedback, self._clock()
            )
            if updated is None:
                raise NotFoundError("submission", submission_id)

        GRADING_OPERATIONS.labels(operation="grade", result="ok").inc()
        logger.info(
            "Submission graded submission_id=%s grade=%d regrade=%s by=%s",
            submission_id,
            grade,
            submission.is_graded,
            principal.user_id,
        )
        return updated

    async def pending_count(self, principal: Principal | None) -> int:
        """Ungraded submissions across the tutor's courses (all courses for admin)."""
        principal = authorize(principal, TUTOR)
        scope = None if principal.is_admin() else principal.user_id
        async with self._uow_factory() as uow:
            return await uow.submissions.count_pending(scope)

    async def list_for_assignment(
        self, principal: Principal | None, assignment_id: UUID
    ) -> list[Submission]:
        principal = authorize(principal, TUTOR)
        async with self._uow_factory() as uow:
            ctx = await uow.courses.get_assignment_context(assignment_id)
            if ctx is None:
                raise NotFoundError("assignment", assignment_id)
            authorize(principal, TUTOR, lambda p: p.user_id == ctx.tutor_id)
            return await uow.submissions.list_for_assignment(assignment_id)

    async def list_for_tutor(
        self,
        principal: Principal | None,
        pagination: Pagination,
        search: SubmissionSearch | None = None,
    ) -> Page[SubmissionView]:
        """Submission inbox across the tutor's courses, newest first.

        Admins see every course.  Filtering by an assignment the tutor does
        not own simply yields an empty page.
        """
        principal = authorize(principal, TUTOR)
        validate_pagination(pagination)
        scope = None if principal.is_admin() else principal.user_id
        async with self._uow_factory() as uow:
            items, total = await uow.submissions.list_for_tutor(
                scope, search or SubmissionSearch(), pagination
            )
        return Page(items=items, page=pagination.page, limit=pagination.limit, total=total)

    async def delete_submission(self, principal: Principal | None, submission_id: UUID) -> None:
        """Re-open an assignment for its student by removing the submission."""
        principal = authorize(principal, TUTOR)
        async with self._uow_factory() as uow:
            submission = await uow.submissions.get(submission_id)
            if submission is None:
                raise NotFoundError("submission", submission_id)
            ctx = await uow.courses.get_assignment_context(submission.assignment_id)
            if ctx is None:
                raise NotFoundError("assignment", submission.assignment_id)
            authorize(principal, TUTOR, lambda p: p.user_id == ctx.tutor_id)
            await uow.submissions.delete(submission_id)

        GRADING_OPERATIONS.labels(operation="delete", result="ok").inc()
        logger.info(
            "Submission deleted submission_id=%s assignment_id=%s by=%s",
            submission_id,
            submission.assignment_id,
            principal.user_id,
        )
