from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.main import app  # noqa: E402
from app.models.lesson import Lesson  # noqa: E402
from app.repos.lesson_repo import LessonRepo  # noqa: E402
from app.services import token_service  # noqa: E402
from app.services.activity import ActivityRecorder  # noqa: E402
from app.services.cache import cache_service  # noqa: E402
from app.services.task_queue import InMemoryTaskQueue, task_queue  # noqa: E402
from app.store.backend import document_store  # noqa: E402
from app.store.document_store import InMemoryDocumentStore  # noqa: E402

COURSE_ID = "course-1"
USER_ID = "test-user"


class TickingClock:
    """Deterministic clock: each call returns a moment one second later."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 5, 9, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        value = self._now
        self._now += timedelta(seconds=1)
        return value


@pytest.fixture(autouse=True)
def reset_store() -> None:
    """Clear the shared in-memory document store between tests."""
    if hasattr(document_store, "_items"):
        document_store._items.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = USER_ID) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username)


@pytest.fixture
def token() -> str:
    return mint_token()


@pytest.fixture
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Repository test helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """A private store, independent of the app singleton."""
    return InMemoryDocumentStore()


@pytest.fixture
def queue() -> InMemoryTaskQueue:
    return InMemoryTaskQueue()


@pytest.fixture
def repo(store: InMemoryDocumentStore, queue: InMemoryTaskQueue) -> LessonRepo:
    return LessonRepo(store, ActivityRecorder(queue), clock=TickingClock())


def make_lesson(lesson_id: str, order: int = 1, **fields) -> Lesson:
    return Lesson(
        lesson_id=lesson_id,
        module_id=fields.pop("module_id", "m1"),
        title=fields.pop("title", f"Lesson {lesson_id}"),
        order=order,
        **fields,
    )


def seed_course(
    repo: LessonRepo,
    *,
    user_id: str = USER_ID,
    course_id: str = COURSE_ID,
    lesson_ids: tuple[str, ...] = ("l1", "l2", "l3", "l4"),
    total_lessons: int | None = None,
    completed_lessons: int = 0,
    with_meta: bool = True,
) -> None:
    """Write lessons and (optionally) the user's course aggregate."""

    async def _seed() -> None:
        for position, lesson_id in enumerate(lesson_ids, start=1):
            await repo.put_lesson(course_id, make_lesson(lesson_id, order=position))
        if with_meta:
            await repo.put_course_meta(
                user_id,
                course_id,
                total_lessons=len(lesson_ids) if total_lessons is None else total_lessons,
                completed_lessons=completed_lessons,
            )

    asyncio.run(_seed())


@pytest.fixture
def app_repo() -> LessonRepo:
    """A repository over the app's own store and queue, for seeding API tests."""
    return LessonRepo(document_store, ActivityRecorder(task_queue), clock=TickingClock())
