from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Lesson:
    """Authored lesson content.  Written by the authoring pipeline, read-only here."""

    lesson_id: str
    module_id: str | None
    title: str
    order: int = 0
    duration_minutes: int | None = None
    content_md: str | None = None
    content_url: str | None = None
    summary: str | None = None
    tips: tuple[str, ...] = ()
    mini_challenge: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """One user's progress on one lesson.

    completed_at is stamped on every transition into completed and kept
    when the status later moves back out of it.
    """

    status: str = "not_started"  # not_started|in_progress|completed
    progress_percent: float = 0
    score: float | None = None
    last_viewed_at: str | None = None
    completed_at: str | None = None


@dataclass(frozen=True, slots=True)
class LessonDetail:
    lesson: Lesson
    progress: LessonProgress
    notes: str = ""


@dataclass(frozen=True, slots=True)
class NotesSaved:
    updated_at: str
    ok: bool = True


@dataclass(frozen=True, slots=True)
class ChatPosted:
    thread_id: str
    queued: bool = True


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    """Append-only study log line consumed by the weekly dashboard."""

    user_id: str
    activity_type: str  # study|notes|chat
    course_id: str
    lesson_id: str
    minutes: int
    occurred_at: str
