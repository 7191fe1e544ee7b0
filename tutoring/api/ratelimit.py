"""Rate limiting as a per-route FastAPI dependency.

A dependency rather than middleware so each route picks its own bucket
size and health/metrics endpoints stay unlimited.

Keys use the most specific identity available: ``user:<sub>`` when a
bearer token is present, else ``ip:<client address>``.
"""

from __future__ import annotations

import logging

import jwt as pyjwt
from fastapi import HTTPException, Request, status
from redis.exceptions import RedisError

from tutoring.core.metrics import RATE_LIMIT_HITS
from tutoring.services.rate_limiter import RateLimitConfig, RateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = RateLimitConfig()


def require_rate_limit(config: RateLimitConfig = _DEFAULT_CONFIG):
    """Dependency factory: enforce a token bucket on a route.

    Usage::

        @router.post("/...", dependencies=[Depends(require_rate_limit())])
    """

    async def _check(request: Request) -> None:
        limiter: RateLimiter = request.app.state.rate_limiter
        key = _build_key(request)
        try:
            result: RateLimitResult = await limiter.check(key, config)
        except RedisError:
            # Fail open when Redis is unreachable
            logger.warning("Rate limiter unavailable, allowing key=%s", key)
            return

        if not result.allowed:
            RATE_LIMIT_HITS.labels(
                key_type="user" if key.startswith("user:") else "ip"
            ).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _build_key(request: Request) -> str:
    """Rate-limit key from the bearer ``sub`` claim, falling back to client IP.

    The token is read WITHOUT signature verification: a forged ``sub``
    only buys its own bucket.  Authentication happens in require_principal.
    """
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = pyjwt.decode(auth_header[7:], options={"verify_signature": False})
        except pyjwt.InvalidTokenError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
