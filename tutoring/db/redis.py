"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured create_app() builds a
client pool and the rate limiter shares buckets across API instances.
When it is None (local dev, tests) the rate limiter keeps per-process
buckets in memory and no Redis server is needed.

Enrollment, progress and grading state never lives in Redis.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from tutoring.core.config import Settings

logger = logging.getLogger(__name__)


def create_redis(settings: Settings) -> aioredis.Redis | None:  # type: ignore[type-arg]
    if not settings.redis_url:
        return None
    return aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_redis(
    client: aioredis.Redis | None,  # type: ignore[type-arg]
) -> AsyncGenerator[None, None]:
    """Ping on startup, close the pool on shutdown.

    An unreachable Redis does not stop the app from starting; /health
    reports it and the rate limiter fails open.
    """
    if client is None:
        logger.info("No REDIS_URL configured: rate limiting uses in-memory buckets")
        yield
        return

    try:
        await client.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except RedisError:
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
