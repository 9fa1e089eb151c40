"""Work queues between the API and the worker.

The API pushes a task and returns; ``python -m app.worker`` pops it and
runs the handler registered for the queue.  The only queue today is
``activity_log``: one task per progress update, notes edit or chat post.

Redis lists back the queues in deployment (LPUSH on ``tasks:<queue>``,
BRPOP on the worker side, so FIFO).  Delivery is at-most-once, which the
activity log tolerates.  Without REDIS_URL the queues are plain lists in
this process, which is what tests use.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from typing import Protocol, runtime_checkable

from app.db.redis import redis_pool


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    queue: str
    payload: dict

    @classmethod
    def new(cls, queue: str, payload: dict) -> Task:
        return cls(id=str(uuid.uuid4()), queue=queue, payload=payload)


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task.new(queue, payload)
        self._queues.setdefault(queue, []).append(task)
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        # Never blocks; the worker sleeps between empty polls instead.
        pending = self._queues.get(queue)
        return pending.pop(0) if pending else None

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, ()))


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    def _key(self, queue: str) -> str:
        return f"{self._PREFIX}{queue}"

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task.new(queue, payload)
        await self._redis.lpush(self._key(queue), json.dumps(asdict(task)))
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        popped = await self._redis.brpop(self._key(queue), timeout=timeout)
        if popped is None:
            return None
        _, raw = popped
        return Task(**json.loads(raw))

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(self._key(queue))


if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
