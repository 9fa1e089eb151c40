"""Lesson endpoints: detail, progress, notes, chat.

Thin handlers: the authenticated user id comes from the bearer token,
course and lesson ids from the path, and the optional JSON body is passed
to the service as-is.  Body fields are loosely typed on purpose so that a
wrong value is reported as the domain error (BAD_STATUS, BAD_PROGRESS, ...)
rather than a framework validation error.
"""

from __future__ import annotations

import dataclasses
from typing import Annotated, Any

from fastapi import APIRouter, Body, status
from pydantic import AliasChoices, BaseModel, Field

from app.api.dependencies import CurrentUser, Service
from app.api.progress import CourseProgressOut
from app.services.cache import cache_service, course_progress_key

router = APIRouter(prefix="/v1/courses/{course_id}/lessons", tags=["lessons"])


class ProgressIn(BaseModel):
    status: Any = None  # not_started|in_progress|completed, case-insensitive
    progress_percent: Any = Field(
        default=None, validation_alias=AliasChoices("progress_percent", "progressPercent")
    )
    score: Any = None


class NotesIn(BaseModel):
    content: Any = None


class ChatIn(BaseModel):
    message: Any = None


class LessonOut(BaseModel):
    lesson_id: str
    module_id: str | None
    title: str
    order: int
    duration_minutes: int | None
    content_md: str | None
    content_url: str | None
    summary: str | None
    tips: list[str]
    mini_challenge: dict[str, Any] | None


class LessonProgressOut(BaseModel):
    status: str
    progress_percent: float
    score: float | None = None
    last_viewed_at: str | None = None
    completed_at: str | None = None


class LessonDetailOut(BaseModel):
    lesson: LessonOut
    progress: LessonProgressOut
    notes: str


class NotesOut(BaseModel):
    ok: bool
    updated_at: str


class ChatOut(BaseModel):
    thread_id: str
    queued: bool


def _fields(body: BaseModel | None) -> dict[str, Any]:
    return body.model_dump() if body is not None else {}


@router.get("/{lesson_id}", response_model=LessonDetailOut)
async def get_lesson(
    course_id: str,
    lesson_id: str,
    principal: CurrentUser,
    service: Service,
) -> LessonDetailOut:
    detail = await service.get_lesson(principal.user_id, course_id, lesson_id)
    return LessonDetailOut(**dataclasses.asdict(detail))


@router.put("/{lesson_id}/progress", response_model=CourseProgressOut)
async def set_progress(
    course_id: str,
    lesson_id: str,
    principal: CurrentUser,
    service: Service,
    body: Annotated[ProgressIn | None, Body()] = None,
) -> CourseProgressOut:
    result = await service.set_progress(principal.user_id, course_id, lesson_id, _fields(body))

    # The cached course summary is stale now that the aggregate moved.
    await cache_service.delete(course_progress_key(principal.user_id, course_id))

    return CourseProgressOut(**dataclasses.asdict(result))


@router.put("/{lesson_id}/notes", response_model=NotesOut)
async def set_notes(
    course_id: str,
    lesson_id: str,
    principal: CurrentUser,
    service: Service,
    body: Annotated[NotesIn | None, Body()] = None,
) -> NotesOut:
    saved = await service.set_notes(principal.user_id, course_id, lesson_id, _fields(body))
    return NotesOut(**dataclasses.asdict(saved))


@router.post(
    "/{lesson_id}/chat",
    response_model=ChatOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def post_chat(
    course_id: str,
    lesson_id: str,
    principal: CurrentUser,
    service: Service,
    body: Annotated[ChatIn | None, Body()] = None,
) -> ChatOut:
    posted = await service.post_chat(principal.user_id, course_id, lesson_id, _fields(body))
    return ChatOut(**dataclasses.asdict(posted))
