"""Lesson service: input validation and orchestration.

Every operation checks and normalizes its inputs before the repository is
touched, so a rejected request never reaches the store.  Rejections raise
LessonError with the kind the API layer maps to a status code.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from app.core.errors import ErrorKind, LessonError
from app.models.lesson import ChatPosted, LessonDetail, NotesSaved
from app.models.progress import LESSON_STATUSES, CourseProgress
from app.repos.lesson_repo import COURSE_STATUSES, LessonRepo
from app.services.activity import ActivityRecorder
from app.services.task_queue import task_queue
from app.store.backend import document_store

logger = logging.getLogger(__name__)

Body = Mapping[str, Any] | None


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a score or a percentage.
    return isinstance(value, int | float) and not isinstance(value, bool)


def _require_ids(*ids: Any) -> tuple[str, ...]:
    cleaned = tuple(_clean(i) for i in ids)
    if not all(cleaned):
        logger.warning("Rejected request with missing identifier")
        raise LessonError(ErrorKind.BAD_INPUT)
    return cleaned


def normalize_status(raw: Any) -> str:
    status = _clean(raw).lower()
    if status not in LESSON_STATUSES:
        logger.warning("Rejected progress status=%r", raw)
        raise LessonError(ErrorKind.BAD_STATUS)
    return status


def normalize_percent(raw: Any) -> float:
    """Parse a client-supplied percentage and clamp it to [0, 100]."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        # Clamp first: a JSON integer may be too large for a float.
        value = float(max(0, min(100, raw)))
    elif isinstance(raw, float):
        value = raw
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            value = math.nan
    else:
        value = math.nan

    if math.isnan(value):
        logger.warning("Rejected progress_percent=%r", raw)
        raise LessonError(ErrorKind.BAD_PROGRESS)
    return round(max(0.0, min(100.0, value)), 2)


def normalize_score(raw: Any) -> float | None:
    if not _is_number(raw):
        return None
    try:
        value = float(raw)
    except OverflowError:
        return None
    return raw if math.isfinite(value) else None


class LessonService:
    def __init__(self, repo: LessonRepo) -> None:
        self._repo = repo

    async def get_lesson(self, user_id: str, course_id: str, lesson_id: str) -> LessonDetail:
        user_id, course_id, lesson_id = _require_ids(user_id, course_id, lesson_id)
        detail = await self._repo.get_lesson_detail(user_id, course_id, lesson_id)
        if detail is None:
            raise LessonError(ErrorKind.NOT_FOUND)
        return detail

    async def set_progress(
        self, user_id: str, course_id: str, lesson_id: str, body: Body
    ) -> CourseProgress:
        user_id, course_id, lesson_id = _require_ids(user_id, course_id, lesson_id)
        body = body or {}

        status = normalize_status(body.get("status"))

        progress_percent = None
        if body.get("progress_percent") is not None:
            progress_percent = normalize_percent(body["progress_percent"])
        if status == "completed":
            progress_percent = 100.0

        return await self._repo.update_lesson_progress(
            user_id,
            course_id,
            lesson_id,
            status,
            progress_percent=progress_percent,
            score=normalize_score(body.get("score")),
        )

    async def set_notes(
        self, user_id: str, course_id: str, lesson_id: str, body: Body
    ) -> NotesSaved:
        user_id, course_id, lesson_id = _require_ids(user_id, course_id, lesson_id)
        content = _clean((body or {}).get("content"))
        return await self._repo.set_lesson_notes(user_id, course_id, lesson_id, content)

    async def post_chat(
        self, user_id: str, course_id: str, lesson_id: str, body: Body
    ) -> ChatPosted:
        user_id, course_id, lesson_id = _require_ids(user_id, course_id, lesson_id)
        message = _clean((body or {}).get("message"))
        if not message:
            logger.warning("Rejected empty chat message course=%s lesson=%s", course_id, lesson_id)
            raise LessonError(ErrorKind.EMPTY_MESSAGE)
        return await self._repo.append_chat_message(user_id, course_id, lesson_id, message)

    async def course_progress(self, user_id: str, course_id: str) -> CourseProgress:
        user_id, course_id = _require_ids(user_id, course_id)
        return await self._repo.get_course_progress(user_id, course_id)

    async def list_courses(self, user_id: str, status: str | None = None) -> list[CourseProgress]:
        (user_id,) = _require_ids(user_id)
        if status is not None:
            status = _clean(status).lower()
            if status not in COURSE_STATUSES:
                logger.warning("Rejected course status filter=%r", status)
                raise LessonError(ErrorKind.BAD_STATUS)
        return await self._repo.list_course_progress(user_id, status)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

lesson_service = LessonService(LessonRepo(document_store, ActivityRecorder(task_queue)))
