"""
Fixed-window rate limiting backed by Redis.

Each caller gets one counter per window: ``ratelimit:{caller}:{window}``.
The counter is created by INCR and given a TTL of one window, so stale
windows disappear on their own and every worker shares the same count.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from backend.app.core.config import settings
from backend.app.core.exceptions import RateLimitExceededError
from backend.app.core.redis_client import current_client

logger = logging.getLogger("teleport.ratelimit")

RATE_LIMIT_PREFIX = "ratelimit:"


@dataclass
class RateLimitStatus:
    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after: int = 0


def caller_key(request: Request) -> str:
    """Identify the caller by the first X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def hit(
    caller: str,
    limit: Optional[int] = None,
    window_seconds: Optional[int] = None,
    now: Optional[float] = None
) -> RateLimitStatus:
    """
    Count one request for ``caller`` in the current window.

    If Redis cannot be reached the request is allowed and a warning logged.
    """
    limit = limit or settings.rate_limit_max_requests
    window_seconds = window_seconds or settings.rate_limit_window_seconds
    now = time.time() if now is None else now

    window = int(now // window_seconds)
    reset_at = (window + 1) * window_seconds
    key = f"{RATE_LIMIT_PREFIX}{caller}:{window}"

    try:
        client = current_client()
        count = await client.incr(key)
        if count == 1:
            await client.expire(key, window_seconds)
    except Exception as exc:
        logger.warning("Rate limiter unavailable, allowing %s: %s", caller, exc)
        return RateLimitStatus(allowed=True, limit=limit, remaining=limit, reset_at=reset_at)

    if count > limit:
        return RateLimitStatus(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=reset_at,
            retry_after=max(1, int(reset_at - now)),
        )

    return RateLimitStatus(allowed=True, limit=limit, remaining=limit - count, reset_at=reset_at)


async def enforce_rate_limit(request: Request) -> None:
    """Router dependency: reject the request with 429 once the window is spent."""
    if not settings.rate_limit_enabled:
        return

    caller = caller_key(request)
    result = await hit(caller)
    if not result.allowed:
        logger.info("Rate limit exceeded for %s", caller)
        raise RateLimitExceededError(retry_after=result.retry_after, reset_at=result.reset_at)
