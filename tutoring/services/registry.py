"""Service container built once per application by create_app()."""

from __future__ import annotations

from dataclasses import dataclass

from tutoring.core.clock import Clock, epoch_seconds
from tutoring.repos.unit_of_work import UnitOfWorkFactory
from tutoring.services.completion_service import CompletionTracker
from tutoring.services.dashboard_service import DashboardService
from tutoring.services.enrollment_service import EnrollmentService
from tutoring.services.grading_service import GradingLedger
from tutoring.services.principal_resolver import PrincipalResolver


@dataclass(frozen=True, slots=True)
class Services:
    resolver: PrincipalResolver
    enrollments: EnrollmentService
    completions: CompletionTracker
    grading: GradingLedger
    dashboard: DashboardService


def build_services(uow_factory: UnitOfWorkFactory, clock: Clock = epoch_seconds) -> Services:
    return Services(
        resolver=PrincipalResolver(uow_factory),
        enrollments=EnrollmentService(uow_factory, clock),
        completions=CompletionTracker(uow_factory, clock),
        grading=GradingLedger(uow_factory, clock),
        dashboard=DashboardService(uow_factory),
    )
