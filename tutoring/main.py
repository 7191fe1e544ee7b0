from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tutoring.api.dashboard import router as dashboard_router
from tutoring.api.enrollments import router as enrollments_router
from tutoring.api.errors import register_error_handlers
from tutoring.api.health import router as health_router
from tutoring.api.metrics_endpoint import router as metrics_router
from tutoring.api.progress import router as progress_router
from tutoring.api.submissions import router as submissions_router
from tutoring.core.clock import Clock, epoch_seconds
from tutoring.core.config import SETTINGS, Settings
from tutoring.core.logging import setup_logging
from tutoring.db.engine import Database, create_db, lifespan_db
from tutoring.db.redis import create_redis, lifespan_redis
from tutoring.middleware.metrics import MetricsMiddleware
from tutoring.middleware.request_context import RequestContextMiddleware
from tutoring.repos.pg_unit_of_work import pg_unit_of_work_factory
from tutoring.repos.unit_of_work import InMemoryStore, UnitOfWorkFactory
from tutoring.services.rate_limiter import InMemoryRateLimiter, RedisRateLimiter
from tutoring.services.registry import build_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = SETTINGS,
    *,
    store: InMemoryStore | None = None,
    clock: Clock = epoch_seconds,
) -> FastAPI:
    """Build the application and every collaborator it owns.

    With DATABASE_URL set (and no explicit ``store``) units of work run on
    PostgreSQL; otherwise on an InMemoryStore.  Nothing connects until
    the lifespan starts.
    """
    setup_logging(settings.log_level, json_format=settings.log_json)

    db: Database | None = None
    uow_factory: UnitOfWorkFactory
    if store is None and settings.database_url:
        db = create_db(settings)
        uow_factory = pg_unit_of_work_factory(db.session_factory)
    else:
        store = store if store is not None else InMemoryStore()
        uow_factory = store.unit_of_work

    redis_client = create_redis(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        # Nested so teardown runs in reverse order even if one fails
        async with lifespan_db(db):
            async with lifespan_redis(redis_client):
                yield

    app = FastAPI(
        title="tutoring-service",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings
    app.state.db = db
    app.state.store = store
    app.state.redis = redis_client
    app.state.rate_limiter = (
        RedisRateLimiter(redis_client) if redis_client is not None else InMemoryRateLimiter()
    )
    app.state.services = build_services(uow_factory, clock)

    register_error_handlers(app)

    # Last added runs first: RequestContext → Metrics → route handler
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(submissions_router)
    app.include_router(dashboard_router)

    logger.info(
        "tutoring-service configured  env=%s log_level=%s port=%d store=%s docs=%s",
        settings.app_env,
        settings.log_level,
        settings.port,
        "postgres" if db is not None else "memory",
        "on" if settings.is_dev else "off",
    )
    return app


app = create_app()
