"""
Redis client initialization and connection management.

Redis backs the shared counters (rate limiting) and the token
revocation lists, so every worker process sees the same state.
"""

import logging
import redis.asyncio as redis
from backend.app.core.config import settings

logger = logging.getLogger("teleport.redis")

# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


def current_client():
    """
    Return the active module-level client.

    Looked up at call time so tests can swap ``redis_client`` for a fake.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await current_client().ping())
    except Exception as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False
