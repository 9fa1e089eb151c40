"""Prometheus metrics endpoint.

Prometheus scrapes this every N seconds and gets plain text in the
exposition format, e.g.:

  # TYPE lesson_progress_updates_total counter
  lesson_progress_updates_total{delta="1"} 312.0

Restrict access in production (internal port or network policy); request
rates and error patterns reveal more than they should.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose all Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
