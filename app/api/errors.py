"""Translate service errors into HTTP responses.

The service raises LessonError carrying an ErrorKind; this module is the
only place that knows which status code each kind becomes.  The response
body is always ``{"error": "<KIND>"}`` so clients can match on the kind.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import ErrorKind, LessonError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.BAD_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BAD_STATUS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BAD_PROGRESS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.EMPTY_MESSAGE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.COURSE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(kind: ErrorKind, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND[kind], content={"error": kind.value}, headers=headers
    )


async def _handle_lesson_error(request: Request, exc: LessonError) -> JSONResponse:
    logger.info(
        "%s %s rejected: %s",
        request.method,
        request.url.path,
        exc.kind.value,
        extra={"error_kind": exc.kind.value},
    )
    return error_response(exc.kind)


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        return error_response(ErrorKind.UNAUTHORIZED, headers=exc.headers)
    # Routing errors (404 unknown path, 405) keep the framework's shape.
    return JSONResponse(
        status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers
    )


async def _handle_unclassified(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
        extra={"error_kind": ErrorKind.ERROR.value},
    )
    return error_response(ErrorKind.ERROR)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LessonError, _handle_lesson_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unclassified)
