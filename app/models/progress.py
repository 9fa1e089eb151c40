from __future__ import annotations

from dataclasses import dataclass

LESSON_STATUSES = ("not_started", "in_progress", "completed")


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Per-user course rollup, the other half of every progress transaction.

    Kept incrementally (delta per lesson transition) so the course progress
    bar is a single point read instead of a scan over every lesson.
    """

    course_id: str
    completed_lessons: int = 0
    total_lessons: int = 0
    progress_percent: float = 0
    status: str = "active"  # active|completed
    updated_at: str | None = None
