"""Unit of work: one transaction per service operation.

Every service method opens exactly one unit of work and performs all of
its reads and writes through the repos it exposes:

    async with self._uow_factory() as uow:
        enrollment = await uow.enrollments.get(enrollment_id)
        ...

Leaving the block normally commits; leaving it with an exception rolls
everything back.  This is what makes "upsert completion + update
progress" and "delete completions + delete enrollment" all-or-nothing.

Two implementations share the protocol:
  InMemoryUnitOfWork: dev/test, over an InMemoryStore (this module)
  PgUnitOfWork      : PostgreSQL via SQLAlchemy (pg_unit_of_work.py)
"""

from __future__ import annotations

from types import TracebackType
from typing import Any, Protocol

from tutoring.repos.completion_repo import CompletionRepo, InMemoryCompletionRepo
from tutoring.repos.course_repo import CourseRepo, InMemoryCourseRepo
from tutoring.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from tutoring.repos.submission_repo import InMemorySubmissionRepo, SubmissionRepo
from tutoring.repos.user_repo import InMemoryUserRepo, UserRepo


class UnitOfWork(Protocol):
    users: UserRepo
    courses: CourseRepo
    enrollments: EnrollmentRepo
    completions: CompletionRepo
    submissions: SubmissionRepo

    async def __aenter__(self) -> UnitOfWork: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


class UnitOfWorkFactory(Protocol):
    """``read_snapshot=True`` asks for one consistent snapshot across reads."""

    def __call__(self, *, read_snapshot: bool = False) -> UnitOfWork: ...



class InMemoryStore:
    """All in-memory repos of one process, with snapshot/restore.

    In-memory repo methods never suspend, so a unit of work runs from
    enter to exit without another task observing its intermediate state.
    Rollback restores the snapshot taken on enter.
    """

    def __init__(self) -> None:
        self.users = InMemoryUserRepo()
        self.courses = InMemoryCourseRepo()
        self.enrollments = InMemoryEnrollmentRepo(self.users, self.courses)
        self.completions = InMemoryCompletionRepo()
        self.submissions = InMemorySubmissionRepo(self.courses, self.users)

    def _repos(self) -> tuple[Any, ...]:
        return (
            self.users,
            self.courses,
            self.enrollments,
            self.completions,
            self.submissions,
        )

    def snapshot(self) -> tuple[Any, ...]:
        return tuple(repo._dump() for repo in self._repos())

    def restore(self, state: tuple[Any, ...]) -> None:
        for repo, repo_state in zip(self._repos(), state, strict=True):
            repo._load(repo_state)

    def unit_of_work(self, *, read_snapshot: bool = False) -> InMemoryUnitOfWork:
        # A unit of work never interleaves with another, so every one is a snapshot
        return InMemoryUnitOfWork(self)


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._snapshot: tuple[Any, ...] | None = None
        self.users = store.users
        self.courses = store.courses
        self.enrollments = store.enrollments
        self.completions = store.completions
        self.submissions = store.submissions

    async def __aenter__(self) -> InMemoryUnitOfWork:
        self._snapshot = self._store.snapshot()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and self._snapshot is not None:
            self._store.restore(self._snapshot)
        self._snapshot = None
