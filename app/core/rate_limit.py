"""Shared rate limiter instance.

Counters live in Redis when it is reachable so limits hold across
workers; otherwise they are kept in memory (development / tests).
AI endpoints carry tighter per-route limits because every call costs
upstream credits.
"""

import logging

import redis as sync_redis
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)


def _create_limiter() -> Limiter:
    from app.config import settings

    default_limits = [settings.RATE_LIMIT_DEFAULT]
    if not settings.REDIS_URL:
        logger.info("Rate limiter: REDIS_URL not set, using in-memory storage")
        return Limiter(key_func=get_remote_address, default_limits=default_limits)

    try:
        client = sync_redis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        client.ping()
        client.close()
        logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
        return Limiter(
            key_func=get_remote_address,
            default_limits=default_limits,
            storage_uri=settings.REDIS_URL,
        )
    except Exception:
        logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
        return Limiter(key_func=get_remote_address, default_limits=default_limits)


limiter = _create_limiter()
