"""Submission and grading routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from tutoring.api.dependencies import CurrentPrincipal, get_grading_ledger
from tutoring.api.ratelimit import require_rate_limit
from tutoring.api.schemas import (
    GradeIn,
    PendingCountOut,
    SubmissionOut,
    SubmissionPageOut,
    SubmissionViewOut,
    SubmitIn,
)
from tutoring.models.page import Pagination
from tutoring.models.submission import SubmissionSearch
from tutoring.services.grading_service import GradingLedger

router = APIRouter(prefix="/v1", tags=["submissions"])

Ledger = Annotated[GradingLedger, Depends(get_grading_ledger)]


@router.post(
    "/assignments/{assignment_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def submit(
    assignment_id: UUID, body: SubmitIn, principal: CurrentPrincipal, ledger: Ledger
) -> SubmissionOut:
    submission = await ledger.submit(principal, assignment_id, body.payload)
    return SubmissionOut.from_model(submission)


@router.get(
    "/assignments/{assignment_id}/submissions", response_model=list[SubmissionOut]
)
async def list_submissions(
    assignment_id: UUID, principal: CurrentPrincipal, ledger: Ledger
) -> list[SubmissionOut]:
    rows = await ledger.list_for_assignment(principal, assignment_id)
    return [SubmissionOut.from_model(s) for s in rows]


@router.get("/submissions", response_model=SubmissionPageOut)
async def list_inbox(
    request: Request,
    principal: CurrentPrincipal,
    ledger: Ledger,
    page: int = 1,
    limit: Annotated[int | None, Query()] = None,
    search: str | None = None,
    assignment_id: UUID | None = None,
    pending: bool = False,
) -> SubmissionPageOut:
    if limit is None:
        limit = request.app.state.settings.default_page_size
    result = await ledger.list_for_tutor(
        principal,
        Pagination(page=page, limit=limit),
        SubmissionSearch(text=search or None, assignment_id=assignment_id, pending_only=pending),
    )
    return SubmissionPageOut(
        items=[SubmissionViewOut.from_view(v) for v in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get("/submissions/pending-count", response_model=PendingCountOut)
async def pending_count(principal: CurrentPrincipal, ledger: Ledger) -> PendingCountOut:
    return PendingCountOut(pending=await ledger.pending_count(principal))


@router.put(
    "/submissions/{submission_id}/grade",
    response_model=SubmissionOut,
    dependencies=[Depends(require_rate_limit())],
)
async def grade(
    submission_id: UUID, body: GradeIn, principal: CurrentPrincipal, ledger: Ledger
) -> SubmissionOut:
    submission = await ledger.grade(principal, submission_id, body.grade, body.feedback)
    return SubmissionOut.from_model(submission)


@router.delete(
    "/submissions/{submission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_rate_limit())],
)
async def delete_submission(
    submission_id: UUID, principal: CurrentPrincipal, ledger: Ledger
) -> Response:
    await ledger.delete_submission(principal, submission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
