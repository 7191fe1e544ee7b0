"""Enrollment routes: enroll, unenroll, tutor rosters, student listing."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from tutoring.api.dependencies import CurrentPrincipal, get_enrollment_service
from tutoring.api.ratelimit import require_rate_limit
from tutoring.api.schemas import (
    EnrollIn,
    EnrollmentOut,
    EnrollmentPageOut,
    EnrollmentViewOut,
)
from tutoring.models.enrollment import EnrollmentSearch
from tutoring.models.page import Pagination
from tutoring.services.enrollment_service import EnrollmentService

router = APIRouter(prefix="/v1", tags=["enrollments"])

Enrollments = Annotated[EnrollmentService, Depends(get_enrollment_service)]


@router.post(
    "/enrollments",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def enroll(
    body: EnrollIn, principal: CurrentPrincipal, service: Enrollments
) -> EnrollmentOut:
    enrollment = await service.enroll(principal, body.student_id, body.course_id)
    return EnrollmentOut.from_model(enrollment)


@router.get("/enrollments", response_model=EnrollmentPageOut)
async def list_enrollments(
    request: Request,
    principal: CurrentPrincipal,
    service: Enrollments,
    page: int = 1,
    limit: Annotated[int | None, Query()] = None,
    search: str | None = None,
    course_id: UUID | None = None,
    student: str | None = None,
    course_title: str | None = None,
) -> EnrollmentPageOut:
    if limit is None:
        limit = request.app.state.settings.default_page_size
    result = await service.list_for_tutor(
        principal,
        Pagination(page=page, limit=limit),
        EnrollmentSearch(
            student=student or None,
            course_title=course_title or None,
            text=search or None,
        ),
        course_id,
    )
    return EnrollmentPageOut(
        items=[EnrollmentViewOut.from_view(v) for v in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.get("/enrollments/{enrollment_id}", response_model=EnrollmentViewOut)
async def get_enrollment(
    enrollment_id: UUID, principal: CurrentPrincipal, service: Enrollments
) -> EnrollmentViewOut:
    view = await service.get_enrollment(principal, enrollment_id)
    return EnrollmentViewOut.from_view(view)


@router.delete(
    "/enrollments/{enrollment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_rate_limit())],
)
async def unenroll(
    enrollment_id: UUID, principal: CurrentPrincipal, service: Enrollments
) -> Response:
    await service.unenroll(principal, enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me/enrollments", response_model=list[EnrollmentViewOut])
async def my_enrollments(
    principal: CurrentPrincipal, service: Enrollments
) -> list[EnrollmentViewOut]:
    views = await service.list_for_student(principal)
    return [EnrollmentViewOut.from_view(v) for v in views]


@router.get("/courses/{course_id}/enrollments", response_model=EnrollmentPageOut)
async def list_course_enrollments(
    request: Request,
    course_id: UUID,
    principal: CurrentPrincipal,
    service: Enrollments,
    page: int = 1,
    limit: Annotated[int | None, Query()] = None,
    student: str | None = None,
    course_title: str | None = None,
) -> EnrollmentPageOut:
    if limit is None:
        limit = request.app.state.settings.default_page_size
    result = await service.list_for_course(
        principal,
        course_id,
        Pagination(page=page, limit=limit),
        EnrollmentSearch(student=student or None, course_title=course_title or None),
    )
    return EnrollmentPageOut(
        items=[EnrollmentViewOut.from_view(v) for v in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        pages=result.pages,
    )


@router.delete(
    "/courses/{course_id}/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_rate_limit())],
)
async def remove_student(
    course_id: UUID, student_id: UUID, principal: CurrentPrincipal, service: Enrollments
) -> Response:
    await service.remove_student(principal, course_id, student_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
