"""Best-effort activity log.

Each mutating lesson action leaves one line in the user's activity log
(``UA#<user>`` / ``ACT#<timestamp>...``), which the weekly dashboard sums
by minutes.  The line is NOT part of the progress transaction: it is sent
to the ``activity_log`` queue after the primary write has committed, and
the worker persists it later.  A failed send is logged and counted, never
raised: the caller's operation has already succeeded.
"""

from __future__ import annotations

import dataclasses
import logging

from app.core.metrics import ACTIVITY_RECORD_FAILURES
from app.models.lesson import ActivityEntry
from app.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)

ACTIVITY_QUEUE = "activity_log"

# Coarse minutes credited per action.
STUDY_COMPLETED_MINUTES = 15
STUDY_MINUTES = 5
NOTES_MINUTES = 3
CHAT_MINUTES = 2


def study_minutes(next_status: str) -> int:
    return STUDY_COMPLETED_MINUTES if next_status == "completed" else STUDY_MINUTES


class ActivityRecorder:
    def __init__(self, queue: TaskQueue) -> None:
        self._queue = queue

    async def record(self, entry: ActivityEntry) -> None:
        """Hand ``entry`` to the worker queue.  Never raises."""
        try:
            task = await self._queue.enqueue(ACTIVITY_QUEUE, dataclasses.asdict(entry))
        except Exception:
            ACTIVITY_RECORD_FAILURES.labels(activity_type=entry.activity_type).inc()
            logger.exception(
                "Dropped %s activity for user=%s course=%s lesson=%s",
                entry.activity_type,
                entry.user_id,
                entry.course_id,
                entry.lesson_id,
                extra={
                    "user_id": entry.user_id,
                    "course_id": entry.course_id,
                    "lesson_id": entry.lesson_id,
                },
            )
            return
        logger.debug("Queued activity task=%s type=%s", task.id, entry.activity_type)
