"""Lesson completion routes.

  PUT    /v1/enrollments/{id}/lessons/{lesson_id}/completion  mark complete
  DELETE /v1/enrollments/{id}/lessons/{lesson_id}/completion  mark incomplete
  GET    /v1/enrollments/{id}/lessons                         per-lesson status

PUT because marking complete is idempotent: repeating it returns the
same row with ``changed=false``.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from tutoring.api.dependencies import CurrentPrincipal, get_completion_tracker
from tutoring.api.ratelimit import require_rate_limit
from tutoring.api.schemas import CompletionOut, LessonStatusOut
from tutoring.services.completion_service import CompletionTracker

router = APIRouter(prefix="/v1/enrollments", tags=["progress"])

Tracker = Annotated[CompletionTracker, Depends(get_completion_tracker)]


@router.put(
    "/{enrollment_id}/lessons/{lesson_id}/completion",
    response_model=CompletionOut,
    dependencies=[Depends(require_rate_limit())],
)
async def mark_complete(
    enrollment_id: UUID, lesson_id: UUID, principal: CurrentPrincipal, tracker: Tracker
) -> CompletionOut:
    result = await tracker.mark_complete(principal, enrollment_id, lesson_id)
    return CompletionOut.from_result(result)


@router.delete(
    "/{enrollment_id}/lessons/{lesson_id}/completion",
    response_model=CompletionOut,
    dependencies=[Depends(require_rate_limit())],
)
async def mark_incomplete(
    enrollment_id: UUID, lesson_id: UUID, principal: CurrentPrincipal, tracker: Tracker
) -> CompletionOut:
    result = await tracker.mark_incomplete(principal, enrollment_id, lesson_id)
    return CompletionOut.from_result(result)


@router.get("/{enrollment_id}/lessons", response_model=list[LessonStatusOut])
async def lesson_statuses(
    enrollment_id: UUID, principal: CurrentPrincipal, tracker: Tracker
) -> list[LessonStatusOut]:
    statuses = await tracker.lesson_statuses(principal, enrollment_id)
    return [LessonStatusOut.from_status(s) for s in statuses]
