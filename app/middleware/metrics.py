"""Prometheus instrumentation for every HTTP request.

Requests are labelled by the matched route template
(``/v1/courses/{course_id}/lessons/{lesson_id}``), never the raw path, so
the series count is bounded by the number of routes rather than by the
number of courses and lessons.  Paths that match no route share the
``unmatched`` label.  Scrapes of /metrics are not counted.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED = "unmatched"


def route_label(request: Request) -> str:
    path = getattr(request.scope.get("route"), "path", None)
    return path if isinstance(path, str) else UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        status_code = "500"
        start = time.monotonic()
        with ACTIVE_REQUESTS.track_inprogress():
            try:
                response = await call_next(request)
                status_code = str(response.status_code)
                return response
            finally:
                endpoint = route_label(request)
                REQUEST_COUNT.labels(
                    method=request.method, endpoint=endpoint, status_code=status_code
                ).inc()
                REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                    time.monotonic() - start
                )
