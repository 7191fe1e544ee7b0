"""Liveness and readiness checks.

  /health: is the process alive?  Always 200; ``status`` says whether a
            dependency is degraded.  Restarting on a Redis blip would be
            too aggressive.
  /ready: can this instance take traffic?  503 when the configured
            database is unreachable, so the load balancer drains it.
            Redis is not critical: the rate limiter fails open.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database(request: Request) -> str:
    db = request.app.state.db
    if db is None:
        return "in_memory"
    try:
        await db.ping()
    except (SQLAlchemyError, OSError):
        logger.warning("Database health check failed", exc_info=True)
        return "unavailable"
    return "ok"


async def _check_redis(request: Request) -> str:
    client = request.app.state.redis
    if client is None:
        return "not_configured"
    try:
        await client.ping()
    except (RedisError, OSError):
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health(request: Request) -> dict:
    checks = {
        "database": await _check_database(request),
        "redis": await _check_redis(request),
    }
    healthy = all(v in ("ok", "in_memory", "not_configured") for v in checks.values())
    return {"status": "ok" if healthy else "degraded", "checks": checks}


@router.get("/ready")
async def ready(request: Request) -> Response:
    if await _check_database(request) == "unavailable":
        return Response(status_code=503, headers={"Retry-After": "5"})
    return Response(status_code=200)
