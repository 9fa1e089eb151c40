"""Background worker process.

RUN:  python -m app.worker

Drains the ``activity_log`` queue into the document store.  The API only
enqueues activity entries (see app/services/activity.py); writing them
here keeps the activity log off the request path, so a slow or failing
write never affects a progress update.

Same image as the API, different command:
  api:    uvicorn app.main:app --host 0.0.0.0 --port 8000
  worker: python -m app.worker
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.core.metrics import QUEUE_DEPTH
from app.db.redis import redis_pool
from app.models.lesson import ActivityEntry
from app.repos.lesson_repo import LessonRepo
from app.services.activity import ACTIVITY_QUEUE, ActivityRecorder
from app.services.task_queue import Task, task_queue
from app.store.backend import document_store

TaskHandler = Callable[[Task], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

# The worker never records activity itself; the recorder is only needed
# to build the repository.
_repo = LessonRepo(document_store, ActivityRecorder(task_queue))


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(ACTIVITY_QUEUE)
async def handle_activity(task: Task) -> None:
    """Persist one activity entry under the user's activity partition."""
    entry = ActivityEntry(**task.payload)
    await _repo.put_activity(entry, task.id)
    logger.info(
        "Recorded %s activity user=%s course=%s minutes=%d",
        entry.activity_type,
        entry.user_id,
        entry.course_id,
        entry.minutes,
    )


# ---------------------------------------------------------------------------
# Main worker loop
# ---------------------------------------------------------------------------


async def process_one(queue_name: str, timeout: int = 1) -> bool:
    """Dequeue and handle at most one task.  Returns True if one was handled."""
    task = await task_queue.dequeue(queue_name, timeout=timeout)
    if task is None:
        return False

    handler = HANDLERS[queue_name]
    try:
        await handler(task)
        logger.info("Task %s on [%s] completed", task.id, queue_name)
    except Exception:
        # Activity entries are best-effort: log and move on, no dead-letter queue.
        logger.exception("Task %s on [%s] failed", task.id, queue_name)
    finally:
        QUEUE_DEPTH.labels(queue_name=queue_name).set(
            await task_queue.queue_length(queue_name)
        )
    return True


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        handled = [await process_one(queue_name) for queue_name in queues]
        if not any(handled) and redis_pool is None:
            # The in-memory queue returns immediately instead of blocking.
            await asyncio.sleep(1)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
