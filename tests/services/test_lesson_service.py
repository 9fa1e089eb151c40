"""LessonService: input checks and normalization ahead of the repository."""

from __future__ import annotations

import asyncio
import math

import pytest

from app.core.errors import ErrorKind, LessonError
from app.repos.lesson_repo import META_SK, LessonRepo, progress_sk, user_course_pk
from app.services.lesson_service import (
    LessonService,
    normalize_percent,
    normalize_score,
    normalize_status,
)
from app.store.document_store import InMemoryDocumentStore
from tests.conftest import COURSE_ID, USER_ID, seed_course


@pytest.fixture
def service(repo: LessonRepo) -> LessonService:
    seed_course(repo)
    return LessonService(repo)


def _kind(call) -> ErrorKind:
    with pytest.raises(LessonError) as exc_info:
        asyncio.run(call)
    return exc_info.value.kind


def _stored_progress(store: InMemoryDocumentStore, lesson_id: str) -> dict:
    item = asyncio.run(store.get_item(user_course_pk(USER_ID, COURSE_ID), progress_sk(lesson_id)))
    assert item is not None
    return item


# ---- normalizers ----


@pytest.mark.parametrize("raw", ["completed", "COMPLETED", "  In_Progress ", "not_started"])
def test_normalize_status_accepts_known_values(raw: str) -> None:
    assert normalize_status(raw) in ("not_started", "in_progress", "completed")


@pytest.mark.parametrize("raw", [None, "", "done", 3, "in progress"])
def test_normalize_status_rejects(raw: object) -> None:
    with pytest.raises(LessonError) as exc_info:
        normalize_status(raw)
    assert exc_info.value.kind is ErrorKind.BAD_STATUS


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (42, 42.0),
        ("42.5", 42.5),
        (" 7 ", 7.0),
        (150, 100.0),
        (-5, 0.0),
        ("-0.5", 0.0),
        (33.333333, 33.33),
        (float("inf"), 100.0),
        (10**400, 100.0),
        (-(10**400), 0.0),
        ("1" + "0" * 400, 100.0),
    ],
)
def test_normalize_percent(raw: object, expected: float) -> None:
    assert normalize_percent(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", "  ", True, [10], {"v": 1}, math.nan, "nan"])
def test_normalize_percent_rejects(raw: object) -> None:
    with pytest.raises(LessonError) as exc_info:
        normalize_percent(raw)
    assert exc_info.value.kind is ErrorKind.BAD_PROGRESS


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (9, 9),
        (8.5, 8.5),
        ("9", None),
        (True, None),
        (None, None),
        (math.inf, None),
        (10**400, None),
    ],
)
def test_normalize_score(raw: object, expected: object) -> None:
    assert normalize_score(raw) == expected


# ---- set_progress ----


def test_completed_forces_full_percent(service: LessonService, store: InMemoryDocumentStore) -> None:
    asyncio.run(
        service.set_progress(
            USER_ID, COURSE_ID, "l1", {"status": "Completed", "progress_percent": 12}
        )
    )
    stored = _stored_progress(store, "l1")
    assert stored["status"] == "completed"
    assert stored["progress_percent"] == 100.0


def test_percent_clamped_on_store(service: LessonService, store: InMemoryDocumentStore) -> None:
    asyncio.run(
        service.set_progress(
            USER_ID, COURSE_ID, "l1", {"status": "in_progress", "progress_percent": "250"}
        )
    )
    assert _stored_progress(store, "l1")["progress_percent"] == 100.0


def test_non_numeric_score_is_dropped(service: LessonService, store: InMemoryDocumentStore) -> None:
    asyncio.run(
        service.set_progress(
            USER_ID, COURSE_ID, "l1", {"status": "in_progress", "score": "high"}
        )
    )
    assert _stored_progress(store, "l1")["score"] is None


def test_bad_status_never_touches_store(
    service: LessonService, store: InMemoryDocumentStore
) -> None:
    before = asyncio.run(store.get_item(user_course_pk(USER_ID, COURSE_ID), META_SK))

    kind = _kind(service.set_progress(USER_ID, COURSE_ID, "l1", {"status": "finished"}))

    assert kind is ErrorKind.BAD_STATUS
    after = asyncio.run(store.get_item(user_course_pk(USER_ID, COURSE_ID), META_SK))
    assert after == before


def test_bad_percent_rejected(service: LessonService) -> None:
    body = {"status": "in_progress", "progress_percent": "lots"}
    assert _kind(service.set_progress(USER_ID, COURSE_ID, "l1", body)) is ErrorKind.BAD_PROGRESS


def test_bad_percent_rejected_even_when_completed(service: LessonService) -> None:
    body = {"status": "completed", "progress_percent": "lots"}
    assert _kind(service.set_progress(USER_ID, COURSE_ID, "l1", body)) is ErrorKind.BAD_PROGRESS


def test_missing_body_is_bad_status(service: LessonService) -> None:
    assert _kind(service.set_progress(USER_ID, COURSE_ID, "l1", None)) is ErrorKind.BAD_STATUS


@pytest.mark.parametrize(
    ("user_id", "course_id", "lesson_id"),
    [("", COURSE_ID, "l1"), (USER_ID, "  ", "l1"), (USER_ID, COURSE_ID, "")],
)
def test_blank_identifiers_rejected(
    service: LessonService, user_id: str, course_id: str, lesson_id: str
) -> None:
    body = {"status": "in_progress"}
    kind = _kind(service.set_progress(user_id, course_id, lesson_id, body))
    assert kind is ErrorKind.BAD_INPUT


def test_identifiers_are_trimmed(service: LessonService) -> None:
    result = asyncio.run(
        service.set_progress(f" {USER_ID} ", f"{COURSE_ID} ", " l1", {"status": "completed"})
    )
    assert result.course_id == COURSE_ID
    assert result.completed_lessons == 1


# ---- lessons, notes, chat ----


def test_get_lesson_not_found(service: LessonService) -> None:
    assert _kind(service.get_lesson(USER_ID, COURSE_ID, "l99")) is ErrorKind.NOT_FOUND


def test_get_lesson_returns_detail(service: LessonService) -> None:
    detail = asyncio.run(service.get_lesson(USER_ID, COURSE_ID, "l2"))
    assert detail.lesson.lesson_id == "l2"
    assert detail.progress.status == "not_started"


def test_notes_trimmed_and_empty_allowed(service: LessonService, repo: LessonRepo) -> None:
    asyncio.run(service.set_notes(USER_ID, COURSE_ID, "l1", {"content": "  key idea  "}))
    assert asyncio.run(repo.get_lesson_detail(USER_ID, COURSE_ID, "l1")).notes == "key idea"

    saved = asyncio.run(service.set_notes(USER_ID, COURSE_ID, "l1", {}))
    assert saved.ok is True
    assert asyncio.run(repo.get_lesson_detail(USER_ID, COURSE_ID, "l1")).notes == ""


@pytest.mark.parametrize("body", [None, {}, {"message": "   "}, {"message": 12}])
def test_empty_chat_message_rejected(service: LessonService, body: dict | None) -> None:
    assert _kind(service.post_chat(USER_ID, COURSE_ID, "l1", body)) is ErrorKind.EMPTY_MESSAGE


def test_chat_posts_share_thread_id(service: LessonService) -> None:
    first = asyncio.run(service.post_chat(USER_ID, COURSE_ID, "l1", {"message": "hi"}))
    second = asyncio.run(service.post_chat(USER_ID, COURSE_ID, "l1", {"message": "again"}))
    assert first.queued is True
    assert first.thread_id == second.thread_id


# ---- course summaries ----


def test_course_progress_defaults_for_unknown_course(service: LessonService) -> None:
    summary = asyncio.run(service.course_progress(USER_ID, "never-enrolled"))
    assert summary.completed_lessons == 0
    assert summary.total_lessons == 0
    assert summary.status == "active"


def test_list_courses_rejects_unknown_status(service: LessonService) -> None:
    assert _kind(service.list_courses(USER_ID, "paused")) is ErrorKind.BAD_STATUS


def test_list_courses_filters_by_status(service: LessonService) -> None:
    assert [c.course_id for c in asyncio.run(service.list_courses(USER_ID, "ACTIVE"))] == [
        COURSE_ID
    ]
    assert asyncio.run(service.list_courses(USER_ID, "completed")) == []
