"""Read-through cache for course progress summaries.

GET /v1/courses/{course_id}/progress looks here first and fills the entry
on a miss.  Entries are the serialized summary, keyed per user and course.

An entry stops being served when either
  - PROGRESS_CACHE_TTL seconds pass (Redis expiry), or
  - a progress update for that user and course commits, which deletes it.

Redis in deployment so every API instance sees the same entries and the
same deletes; an in-process dict otherwise (no expiry, cleared by tests).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from app.core.metrics import CACHE_OPERATIONS
from app.db.redis import redis_pool


def course_progress_key(user_id: str, course_id: str) -> str:
    return f"course-progress:{user_id.strip()}:{course_id.strip()}"


def _count(value: str | None) -> None:
    CACHE_OPERATIONS.labels(operation="miss" if value is None else "hit").inc()


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryCacheService:
    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        _count(value)
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(self._PREFIX + key)
        _count(value)
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.set(self._PREFIX + key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._PREFIX + key)


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
