"""Redis client for the activity queue and the course-progress cache.

REDIS_URL unset means no client at all: app.services.task_queue and
app.services.cache then pick their in-memory implementations.  Nothing in
Redis is a source of truth; losing it loses queued activity lines and
cached reads, never lesson progress.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
        # Cache reads sit on the request path; a slow Redis must not stall them.
        socket_connect_timeout=2,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Check Redis at startup and close the pool at shutdown.

    A failed startup ping is logged, not raised: the service still serves
    progress without its queue and cache.
    """
    if redis_pool is None:
        logger.info("REDIS_URL not set, activity queue and cache are in-process")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis reachable for activity queue and cache")
    except Exception:
        logger.exception("Redis unreachable at startup")

    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis pool closed")
