"""Per-request ID and one summary log line per request.

The ID is taken from the client's X-Request-ID header or generated, kept
in a ContextVar for the duration of the request, stamped on every log
record by the filter setup_logging installs, and echoed on the response.

The summary line carries the course and lesson ids from the matched route,
so the JSON log output can be filtered by course without parsing paths.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import request_id_var

logger = logging.getLogger(__name__)

_ROUTE_IDS = ("course_id", "lesson_id")


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        extra: dict[str, object] = {
            "request_id": req_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        # path_params is filled in by routing, so it is only known afterwards.
        for name in _ROUTE_IDS:
            if name in request.path_params:
                extra[name] = request.path_params[name]

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra=extra,
        )
        response.headers["X-Request-ID"] = req_id
        return response
