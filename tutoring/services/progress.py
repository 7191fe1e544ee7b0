"""Progress aggregation: completed lessons → whole-number percentage."""

from __future__ import annotations

import logging

from tutoring.core.errors import NotFoundError
from tutoring.models.enrollment import Enrollment
from tutoring.repos.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def compute_progress(total: int, completed: int) -> int:
    """Return ``round(100 * completed / total)`` rounding halves up.

    0 when the course has no lessons; clamped to 100 when completions
    outnumber lessons (a lesson deleted after being completed).  Integer
    arithmetic only, so 1/8 → 13 and 2/3 → 67 with no float edge cases.

    >>> compute_progress(3, 2)
    67
    >>> compute_progress(0, 0)
    0
    """
    if total < 0 or completed < 0:
        raise ValueError("total and completed must be non-negative")
    if total == 0:
        return 0
    percent = (200 * completed + total) // (2 * total)
    return min(percent, 100)


async def count_progress(uow: UnitOfWork, enrollment: Enrollment) -> tuple[int, int, int]:
    """Return ``(completed, total, percent)`` without touching the stored value."""
    total = await uow.courses.count_lessons(enrollment.course_id)
    completed = await uow.completions.count_completed(enrollment.id)
    return completed, total, compute_progress(total, completed)


async def refresh_progress(
    uow: UnitOfWork, enrollment: Enrollment, *, locked: bool = False
) -> tuple[int, int, int]:
    """Recompute an enrollment's progress inside ``uow``.

    Returns ``(completed, total, percent)``.  The stored percentage is
    rewritten only when it has drifted (e.g. a lesson was added to the
    course since the last completion toggle).

    Pass ``locked=True`` when ``enrollment`` was read FOR UPDATE.  Otherwise
    a drifted value is recounted under the row lock before it is written,
    so a read never overwrites the result of a toggle that committed after
    the first count.
    """
    completed, total, percent = await count_progress(uow, enrollment)
    if percent == enrollment.progress_percent:
        return completed, total, percent

    stored = enrollment.progress_percent
    if not locked:
        current = await uow.enrollments.get(enrollment.id, for_update=True)
        if current is None:
            raise NotFoundError("enrollment", enrollment.id)
        completed, total, percent = await count_progress(uow, current)
        stored = current.progress_percent

    if percent != stored:
        await uow.enrollments.set_progress(enrollment.id, percent)
        logger.info(
            "Progress updated enrollment_id=%s completed=%d total=%d progress=%d",
            enrollment.id,
            completed,
            total,
            percent,
        )
    return completed, total, percent
