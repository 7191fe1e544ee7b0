from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from tutoring.api.dependencies import CurrentPrincipal, get_dashboard_service
from tutoring.api.schemas import EnrollmentStatsOut, StudentSummaryOut, TutorSummaryOut
from tutoring.services.dashboard_service import DashboardService

router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])

Dashboard = Annotated[DashboardService, Depends(get_dashboard_service)]


@router.get("/tutor", response_model=TutorSummaryOut)
async def tutor_summary(principal: CurrentPrincipal, service: Dashboard) -> TutorSummaryOut:
    summary = await service.tutor_summary(principal)
    return TutorSummaryOut(
        courses=summary.courses,
        lessons=summary.lessons,
        enrollments=summary.enrollments,
        students=summary.students,
        pending_submissions=summary.pending_submissions,
    )


@router.get("/tutor/enrollments", response_model=EnrollmentStatsOut)
async def enrollment_stats(
    principal: CurrentPrincipal, service: Dashboard
) -> EnrollmentStatsOut:
    return EnrollmentStatsOut.from_stats(await service.enrollment_stats(principal))


@router.get("/student", response_model=StudentSummaryOut)
async def student_summary(principal: CurrentPrincipal, service: Dashboard) -> StudentSummaryOut:
    summary = await service.student_summary(principal)
    return StudentSummaryOut(
        enrollments=summary.enrollments,
        completed_courses=summary.completed_courses,
        pending_submissions=summary.pending_submissions,
        total_assignments=summary.total_assignments,
    )
