"""Async Redis client singleton with graceful fallback.

Redis is optional.  When ``REDIS_URL`` is empty or the server does not
answer, :func:`get_redis` returns None and callers report it as
unavailable instead of failing.
"""

import logging

import redis.asyncio as aioredis

from app.config import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis | None:
    """Return the shared Redis client, or None if Redis is unavailable."""
    global _redis
    if _redis is None and settings.REDIS_URL:
        try:
            client = aioredis.from_url(
                settings.REDIS_URL, decode_responses=True, socket_connect_timeout=1,
            )
            await client.ping()
            _redis = client
            logger.info("Redis connected at %s", settings.REDIS_URL)
        except Exception:
            logger.warning("Redis unavailable (%s)", settings.REDIS_URL)
            _redis = None
    return _redis


async def close_redis() -> None:
    """Close the Redis connection on application shutdown."""
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
        logger.info("Redis connection closed")
