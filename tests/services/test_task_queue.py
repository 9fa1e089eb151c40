from __future__ import annotations

import asyncio

from app.services.task_queue import InMemoryTaskQueue, Task, TaskQueue


def test_in_memory_queue_is_fifo_per_queue() -> None:
    queue = InMemoryTaskQueue()
    assert isinstance(queue, TaskQueue)

    async def _run() -> tuple[list[Task | None], int]:
        await queue.enqueue("activity_log", {"n": 1})
        await queue.enqueue("other", {"n": 99})
        await queue.enqueue("activity_log", {"n": 2})
        popped = [await queue.dequeue("activity_log") for _ in range(3)]
        return popped, await queue.queue_length("other")

    popped, other_length = asyncio.run(_run())
    assert [t.payload["n"] if t else None for t in popped] == [1, 2, None]
    assert all(t is None or t.queue == "activity_log" for t in popped)
    assert other_length == 1


def test_tasks_get_unique_ids() -> None:
    first = Task.new("activity_log", {})
    second = Task.new("activity_log", {})
    assert first.id != second.id
