"""Course progress endpoints.

GET /v1/courses/{course_id}/progress
  -> read-through cache (check cache → miss → read aggregate → populate)
  The cache entry is deleted by PUT .../lessons/{lesson_id}/progress.

GET /v1/me/courses?status=active|completed
  -> the user's course aggregates, most recently updated first
"""

from __future__ import annotations

import dataclasses

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import CurrentUser, Service
from app.core.config import SETTINGS
from app.services.cache import cache_service, course_progress_key

router = APIRouter(tags=["progress"])


class CourseProgressOut(BaseModel):
    course_id: str
    completed_lessons: int
    total_lessons: int
    progress_percent: float
    status: str
    updated_at: str | None = None


@router.get("/v1/courses/{course_id}/progress", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: str,
    principal: CurrentUser,
    service: Service,
) -> CourseProgressOut:
    cache_key = course_progress_key(principal.user_id, course_id)

    cached = await cache_service.get(cache_key)
    if cached is not None:
        return CourseProgressOut.model_validate_json(cached)

    result = await service.course_progress(principal.user_id, course_id)
    out = CourseProgressOut(**dataclasses.asdict(result))

    if SETTINGS.progress_cache_ttl > 0:
        await cache_service.set(cache_key, out.model_dump_json(), SETTINGS.progress_cache_ttl)
    return out


@router.get("/v1/me/courses", response_model=list[CourseProgressOut])
async def list_my_courses(
    principal: CurrentUser,
    service: Service,
    status: str | None = None,
) -> list[CourseProgressOut]:
    courses = await service.list_courses(principal.user_id, status)
    return [CourseProgressOut(**dataclasses.asdict(c)) for c in courses]
