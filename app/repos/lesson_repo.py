"""Lesson progress repository over the document store.

Owns the item shapes and the key scheme:

  Lesson      pk=COURSE#<course>            sk=LESSON#<lesson>
              gsi1pk=COURSE#<course>        gsi1sk=ORDER#<order:05d>
  Progress    pk=UC#<user>#<course>         sk=PROGRESS#LESSON#<lesson>
  Aggregate   pk=UC#<user>#<course>         sk=COURSE#METADATA
              gsi2pk=USER#<user>            gsi2sk=STATUS#<status>#<updated_at>
  Notes       pk=UC#<user>#<course>         sk=NOTES#LESSON#<lesson>
  Chat msg    pk=UC#<user>#<course>         sk=CHAT#LESSON#<lesson>#<created_at>
  Chat thread pk=UC#<user>#<course>         sk=CHAT#LESSON#<lesson>#THREAD
  Activity    pk=UA#<user>                  sk=ACT#<occurred_at>#<entry id>

The aggregate row is created by enrollment (outside this service) and is
only ever updated here, in the same transaction as the lesson's progress
row.  Its completed_lessons count moves by the delta of one lesson's
status transition instead of being recounted, which keeps the course
progress bar a single point read.  A ``version`` attribute on the aggregate
turns that read-modify-write into a compare-and-swap: if another update
committed after our read, the transaction is rejected as a CONFLICT.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Callable

from app.core.errors import ErrorKind, LessonError
from app.core.metrics import PROGRESS_CONFLICTS, PROGRESS_UPDATES
from app.models.lesson import (
    ActivityEntry,
    ChatPosted,
    Lesson,
    LessonDetail,
    LessonProgress,
    NotesSaved,
)
from app.models.progress import CourseProgress
from app.services.activity import (
    CHAT_MINUTES,
    NOTES_MINUTES,
    ActivityRecorder,
    study_minutes,
)
from app.store.document_store import DocumentStore, Item, Put, TransactionConflict, Update

logger = logging.getLogger(__name__)

NOT_STARTED = "not_started"
COMPLETED = "completed"
COURSE_ACTIVE = "active"
COURSE_COMPLETED = "completed"
COURSE_STATUSES = (COURSE_ACTIVE, COURSE_COMPLETED)

META_SK = "COURSE#METADATA"
LESSON_INDEX = "gsi1"
STATUS_INDEX = "gsi2"

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def isoformat(moment: datetime.datetime) -> str:
    """2026-01-02T03:04:05.678Z, fixed width so string order is time order."""
    return moment.astimezone(datetime.UTC).strftime("%Y-%m-%dT%H:%M:%S.") + (
        f"{moment.microsecond // 1000:03d}Z"
    )


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def course_pk(course_id: str) -> str:
    return f"COURSE#{course_id}"


def lesson_sk(lesson_id: str) -> str:
    return f"LESSON#{lesson_id}"


def lesson_order_sk(order: int) -> str:
    return f"ORDER#{order:05d}"


def user_course_pk(user_id: str, course_id: str) -> str:
    return f"UC#{user_id}#{course_id}"


def progress_sk(lesson_id: str) -> str:
    return f"PROGRESS#LESSON#{lesson_id}"


def notes_sk(lesson_id: str) -> str:
    return f"NOTES#LESSON#{lesson_id}"


def chat_prefix(lesson_id: str) -> str:
    return f"CHAT#LESSON#{lesson_id}#"


def activity_pk(user_id: str) -> str:
    return f"UA#{user_id}"


def thread_id_for(course_id: str, lesson_id: str) -> str:
    """Stable per lesson so repeated posts chain into one thread."""
    return f"t_{course_id}_{lesson_id}"


# ---------------------------------------------------------------------------
# Aggregate arithmetic
# ---------------------------------------------------------------------------


def completion_delta(previous_status: str, next_status: str) -> int:
    if previous_status != COMPLETED and next_status == COMPLETED:
        return 1
    if previous_status == COMPLETED and next_status != COMPLETED:
        return -1
    return 0


def next_completed(completed: int, delta: int, total: int) -> int:
    value = max(0, completed + delta)
    if total > 0:
        value = min(value, total)
    return value


def percent_of(completed: int, total: int) -> float:
    """completed/total as a percentage, rounded half-up to 2 decimals.

    Integer arithmetic: no float drift, and exactly 100.0 when complete.
    """
    if total <= 0:
        return 0.0
    hundredths = (completed * 10000 * 2 + total) // (2 * total)
    return hundredths / 100


def course_status_for(percent: float) -> str:
    return COURSE_COMPLETED if percent == 100 else COURSE_ACTIVE


# ---------------------------------------------------------------------------
# Item <-> model conversion
# ---------------------------------------------------------------------------


def lesson_item(course_id: str, lesson: Lesson) -> Item:
    return {
        "etype": "LESSON",
        "course_id": course_id,
        "lesson_id": lesson.lesson_id,
        "module_id": lesson.module_id,
        "title": lesson.title,
        "order": lesson.order,
        "duration_minutes": lesson.duration_minutes,
        "content_md": lesson.content_md,
        "content_url": lesson.content_url,
        "summary": lesson.summary,
        "tips": list(lesson.tips),
        "mini_challenge": lesson.mini_challenge,
        "gsi1pk": course_pk(course_id),
        "gsi1sk": lesson_order_sk(lesson.order),
    }


def _item_to_lesson(item: Item) -> Lesson:
    return Lesson(
        lesson_id=item["lesson_id"],
        module_id=item.get("module_id"),
        title=item.get("title") or "",
        order=int(item.get("order") or 0),
        duration_minutes=item.get("duration_minutes"),
        content_md=item.get("content_md"),
        content_url=item.get("content_url"),
        summary=item.get("summary"),
        tips=tuple(item.get("tips") or ()),
        mini_challenge=item.get("mini_challenge") or None,
    )


def _item_to_progress(item: Item | None) -> LessonProgress:
    if item is None:
        return LessonProgress()
    return LessonProgress(
        status=item.get("status") or NOT_STARTED,
        progress_percent=item.get("progress_percent") or 0,
        score=item.get("score"),
        last_viewed_at=item.get("last_viewed_at"),
        completed_at=item.get("completed_at"),
    )


def _item_to_course_progress(course_id: str, item: Item | None) -> CourseProgress:
    if item is None:
        return CourseProgress(course_id=course_id)
    return CourseProgress(
        course_id=course_id,
        completed_lessons=int(item.get("completed_lessons") or 0),
        total_lessons=int(item.get("total_lessons") or 0),
        progress_percent=item.get("progress_percent") or 0,
        status=item.get("status") or COURSE_ACTIVE,
        updated_at=item.get("updated_at"),
    )


class LessonRepo:
    def __init__(
        self,
        store: DocumentStore,
        activity: ActivityRecorder,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._activity = activity
        self._clock = clock

    def _now(self) -> str:
        return isoformat(self._clock())

    # --- authoring / enrollment writes (seeding and external pipelines) ---

    async def put_lesson(self, course_id: str, lesson: Lesson) -> None:
        await self._store.put_item(
            course_pk(course_id), lesson_sk(lesson.lesson_id), lesson_item(course_id, lesson)
        )

    async def put_course_meta(
        self, user_id: str, course_id: str, total_lessons: int, completed_lessons: int = 0
    ) -> None:
        """Open a user's course aggregate, as enrollment does."""
        now = self._now()
        percent = percent_of(completed_lessons, total_lessons)
        status = course_status_for(percent)
        await self._store.put_item(
            user_course_pk(user_id, course_id),
            META_SK,
            {
                "etype": "COURSE_META",
                "course_id": course_id,
                "completed_lessons": completed_lessons,
                "total_lessons": total_lessons,
                "progress_percent": percent,
                "status": status,
                "updated_at": now,
                "version": 0,
                "gsi2pk": f"USER#{user_id}",
                "gsi2sk": f"STATUS#{status}#{now}",
            },
        )

    # --- reads ---

    async def find_lesson(self, course_id: str, lesson_id: str) -> Lesson | None:
        # The course index is ordered by position, not keyed by lesson id,
        # so the lesson is picked out of the course's lessons by filter.
        items = await self._store.query_items(
            course_pk(course_id),
            sk_prefix="ORDER#",
            index=LESSON_INDEX,
            filter={"lesson_id": lesson_id},
        )
        match = next((i for i in items if i.get("lesson_id") == lesson_id), None)
        return _item_to_lesson(match) if match is not None else None

    async def get_lesson_detail(
        self, user_id: str, course_id: str, lesson_id: str
    ) -> LessonDetail | None:
        lesson = await self.find_lesson(course_id, lesson_id)
        if lesson is None:
            return None

        pk = user_course_pk(user_id, course_id)
        progress, notes = await asyncio.gather(
            self._store.get_item(pk, progress_sk(lesson_id)),
            self._store.get_item(pk, notes_sk(lesson_id)),
        )
        return LessonDetail(
            lesson=lesson,
            progress=_item_to_progress(progress),
            notes=(notes or {}).get("content") or "",
        )

    async def read_course_meta(self, user_id: str, course_id: str) -> Item | None:
        return await self._store.get_item(user_course_pk(user_id, course_id), META_SK)

    async def get_course_progress(self, user_id: str, course_id: str) -> CourseProgress:
        meta = await self.read_course_meta(user_id, course_id)
        return _item_to_course_progress(course_id, meta)

    async def list_course_progress(
        self, user_id: str, status: str | None = None, limit: int | None = None
    ) -> list[CourseProgress]:
        """The user's course aggregates, most recently updated first."""
        prefix = f"STATUS#{status}#" if status else "STATUS#"
        items = await self._store.query_items(
            f"USER#{user_id}",
            sk_prefix=prefix,
            index=STATUS_INDEX,
        )
        # The index sorts by status first; recency is the order users expect.
        items.sort(key=lambda i: i.get("updated_at") or "", reverse=True)
        if limit is not None:
            items = items[:limit]
        return [_item_to_course_progress(i.get("course_id") or "", i) for i in items]

    # --- progress transaction ---

    async def update_lesson_progress(
        self,
        user_id: str,
        course_id: str,
        lesson_id: str,
        next_status: str,
        progress_percent: float | None = None,
        score: float | None = None,
    ) -> CourseProgress:
        pk = user_course_pk(user_id, course_id)
        prev, meta = await asyncio.gather(
            self._store.get_item(pk, progress_sk(lesson_id)),
            self._store.get_item(pk, META_SK),
        )
        if meta is None:
            logger.warning(
                "No course aggregate for user=%s course=%s",
                user_id,
                course_id,
                extra={"user_id": user_id, "course_id": course_id},
            )
            raise LessonError(ErrorKind.COURSE_NOT_FOUND)

        previous_status = (prev or {}).get("status") or NOT_STARTED
        delta = completion_delta(previous_status, next_status)

        total = int(meta.get("total_lessons") or 0)
        completed = next_completed(int(meta.get("completed_lessons") or 0), delta, total)
        percent = percent_of(completed, total)
        course_status = course_status_for(percent)
        now = self._now()

        if progress_percent is None:
            progress_percent = (prev or {}).get("progress_percent") or 0
        # Stamped on the transition into completed only, and kept on regression.
        completed_at = now if delta == 1 else (prev or {}).get("completed_at")

        progress: Item = {
            "etype": "PROGRESS",
            "lesson_id": lesson_id,
            "status": next_status,
            "progress_percent": progress_percent,
            "score": score,
            "last_viewed_at": now,
            "completed_at": completed_at,
        }
        version = meta.get("version")
        aggregate = Update(
            pk=pk,
            sk=META_SK,
            set={
                "completed_lessons": completed,
                "progress_percent": percent,
                "status": course_status,
                "updated_at": now,
                "course_id": course_id,
                "version": (version or 0) + 1,
                "gsi2pk": f"USER#{user_id}",
                "gsi2sk": f"STATUS#{course_status}#{now}",
            },
            if_absent={"total_lessons": total},
            expected={"version": version},
        )

        try:
            await self._store.transact_write([Put(pk, progress_sk(lesson_id), progress), aggregate])
        except TransactionConflict:
            PROGRESS_CONFLICTS.inc()
            logger.warning(
                "Course aggregate changed concurrently user=%s course=%s lesson=%s",
                user_id,
                course_id,
                lesson_id,
                extra={"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id},
            )
            raise LessonError(ErrorKind.CONFLICT) from None

        PROGRESS_UPDATES.labels(delta=str(delta)).inc()
        logger.info(
            "Progress user=%s course=%s lesson=%s %s->%s delta=%+d completed=%d/%d pct=%.2f",
            user_id,
            course_id,
            lesson_id,
            previous_status,
            next_status,
            delta,
            completed,
            total,
            percent,
            extra={"user_id": user_id, "course_id": course_id, "lesson_id": lesson_id},
        )

        await self._activity.record(
            ActivityEntry(
                user_id=user_id,
                activity_type="study",
                course_id=course_id,
                lesson_id=lesson_id,
                minutes=study_minutes(next_status),
                occurred_at=now,
            )
        )

        return CourseProgress(
            course_id=course_id,
            completed_lessons=completed,
            total_lessons=total,
            progress_percent=percent,
            status=course_status,
            updated_at=now,
        )

    # --- notes and chat ---

    async def set_lesson_notes(
        self, user_id: str, course_id: str, lesson_id: str, content: str
    ) -> NotesSaved:
        now = self._now()
        await self._store.put_item(
            user_course_pk(user_id, course_id),
            notes_sk(lesson_id),
            {
                "etype": "LESSON_NOTES",
                "lesson_id": lesson_id,
                "content": content or "",
                "updated_at": now,
            },
        )
        await self._activity.record(
            ActivityEntry(
                user_id=user_id,
                activity_type="notes",
                course_id=course_id,
                lesson_id=lesson_id,
                minutes=NOTES_MINUTES,
                occurred_at=now,
            )
        )
        return NotesSaved(updated_at=now)

    async def append_chat_message(
        self, user_id: str, course_id: str, lesson_id: str, message: str
    ) -> ChatPosted:
        pk = user_course_pk(user_id, course_id)
        now = self._now()
        thread_id = thread_id_for(course_id, lesson_id)

        await self._store.put_item(
            pk,
            f"{chat_prefix(lesson_id)}{now}",
            {
                "etype": "LESSON_CHAT_MSG",
                "thread_id": thread_id,
                "lesson_id": lesson_id,
                "role": "user",
                "content": message,
                "created_at": now,
            },
        )
        await self._store.put_item(
            pk,
            f"{chat_prefix(lesson_id)}THREAD",
            {
                "etype": "LESSON_CHAT_THREAD",
                "thread_id": thread_id,
                "lesson_id": lesson_id,
                "last_message_at": now,
            },
        )
        await self._activity.record(
            ActivityEntry(
                user_id=user_id,
                activity_type="chat",
                course_id=course_id,
                lesson_id=lesson_id,
                minutes=CHAT_MINUTES,
                occurred_at=now,
            )
        )
        return ChatPosted(thread_id=thread_id)

    # --- activity (written by the worker) ---

    async def put_activity(self, entry: ActivityEntry, entry_id: str) -> None:
        await self._store.put_item(
            activity_pk(entry.user_id),
            f"ACT#{entry.occurred_at}#{entry_id[:8]}",
            {
                "etype": "USER_ACTIVITY",
                "activity_type": entry.activity_type,
                "course_id": entry.course_id,
                "lesson_id": entry.lesson_id,
                "minutes": entry.minutes,
                "occurred_at": entry.occurred_at,
            },
        )
