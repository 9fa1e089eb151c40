"""Worker: drains the activity queue into the user's activity log."""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

import app.worker as worker
from app.repos.lesson_repo import LessonRepo, activity_pk
from app.services.activity import ACTIVITY_QUEUE
from app.services.task_queue import task_queue
from app.store.backend import document_store
from tests.conftest import COURSE_ID, USER_ID, seed_course


def test_activity_handler_registered() -> None:
    assert worker.HANDLERS[ACTIVITY_QUEUE] is worker.handle_activity


def test_process_one_returns_false_when_idle() -> None:
    assert asyncio.run(worker.process_one(ACTIVITY_QUEUE, timeout=0)) is False


def test_progress_update_lands_in_activity_log(app_repo: LessonRepo) -> None:
    seed_course(app_repo)
    asyncio.run(
        app_repo.update_lesson_progress(
            USER_ID, COURSE_ID, "l1", "completed", progress_percent=100.0
        )
    )
    asyncio.run(app_repo.set_lesson_notes(USER_ID, COURSE_ID, "l1", "done"))

    assert asyncio.run(worker.process_one(ACTIVITY_QUEUE, timeout=0)) is True
    assert asyncio.run(worker.process_one(ACTIVITY_QUEUE, timeout=0)) is True

    entries = asyncio.run(document_store.query_items(activity_pk(USER_ID), sk_prefix="ACT#"))
    assert [(e["activity_type"], e["minutes"]) for e in entries] == [("study", 15), ("notes", 3)]
    assert all(e["course_id"] == COURSE_ID for e in entries)
    assert REGISTRY.get_sample_value("task_queue_depth", {"queue_name": ACTIVITY_QUEUE}) == 0


def test_failed_handler_is_logged_not_raised(
    app_repo: LessonRepo, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _boom(task) -> None:
        raise RuntimeError("store unavailable")

    monkeypatch.setitem(worker.HANDLERS, ACTIVITY_QUEUE, _boom)
    asyncio.run(task_queue.enqueue(ACTIVITY_QUEUE, {"user_id": USER_ID}))

    assert asyncio.run(worker.process_one(ACTIVITY_QUEUE, timeout=0)) is True
    assert asyncio.run(task_queue.queue_length(ACTIVITY_QUEUE)) == 0


def test_malformed_payload_is_dropped() -> None:
    asyncio.run(task_queue.enqueue(ACTIVITY_QUEUE, {"unexpected": True}))

    assert asyncio.run(worker.process_one(ACTIVITY_QUEUE, timeout=0)) is True
    assert asyncio.run(task_queue.queue_length(ACTIVITY_QUEUE)) == 0
