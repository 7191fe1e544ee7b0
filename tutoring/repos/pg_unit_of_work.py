"""PostgreSQL unit of work: one AsyncSession transaction per operation."""

from __future__ import annotations

import logging
from types import TracebackType

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tutoring.core.errors import ConflictError, TransientError
from tutoring.repos.pg_completion_repo import PgCompletionRepo
from tutoring.repos.pg_course_repo import PgCourseRepo
from tutoring.repos.pg_enrollment_repo import PgEnrollmentRepo
from tutoring.repos.pg_submission_repo import PgSubmissionRepo
from tutoring.repos.pg_user_repo import PgUserRepo

logger = logging.getLogger(__name__)

SNAPSHOT_ISOLATION_LEVEL = "REPEATABLE READ"


def is_transient(exc: BaseException) -> bool:
    """Connectivity and timeout failures only.

    DataError, ProgrammingError and friends are bugs or bad input; retrying
    them would fail the same way, so they are not reported as transient.
    """
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class PgUnitOfWork:
    """Commits on clean exit, rolls back otherwise.

    Driver errors are translated at this boundary:
      IntegrityError                      → ConflictError
      connectivity / timeout (is_transient) → TransientError
    Anything else propagates unchanged.

    ``read_snapshot=True`` runs the transaction at REPEATABLE READ so that
    every statement sees the same snapshot; used by multi-count reads.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        read_snapshot: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._read_snapshot = read_snapshot
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> PgUnitOfWork:
        session = self._session_factory()
        self.users = PgUserRepo(session)
        self.courses = PgCourseRepo(session)
        self.enrollments = PgEnrollmentRepo(session)
        self.completions = PgCompletionRepo(session)
        self.submissions = PgSubmissionRepo(session)
        await session.begin()
        if self._read_snapshot:
            try:
                # Must run before the first statement of the transaction
                await session.connection(
                    execution_options={"isolation_level": SNAPSHOT_ISOLATION_LEVEL}
                )
            except DBAPIError as exc:
                await session.close()
                if is_transient(exc):
                    logger.warning("Datastore unavailable error=%s", type(exc).__name__)
                    raise TransientError() from exc
                raise
        self._session = session
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self._session
        assert session is not None
        self._session = None
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        except IntegrityError as commit_exc:
            await session.rollback()
            raise ConflictError("conflicting concurrent write") from commit_exc
        except (DBAPIError, PoolTimeoutError) as commit_exc:
            if not is_transient(commit_exc):
                raise
            logger.warning("Commit failed error=%s", type(commit_exc).__name__)
            raise TransientError() from commit_exc
        finally:
            await session.close()

        if isinstance(exc, IntegrityError):
            raise ConflictError("conflicting concurrent write") from exc
        if exc is not None and is_transient(exc):
            logger.warning("Datastore error error=%s", type(exc).__name__)
            raise TransientError() from exc


def pg_unit_of_work_factory(
    session_factory: async_sessionmaker[AsyncSession],
):
    def _factory(*, read_snapshot: bool = False) -> PgUnitOfWork:
        return PgUnitOfWork(session_factory, read_snapshot=read_snapshot)

    return _factory
