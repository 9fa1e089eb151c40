"""Error kinds raised by the lesson service and repository.

Every failure the core reports carries exactly one ErrorKind.  The kind's
value is the machine-matchable string clients see in ``{"error": ...}``;
the API layer owns the translation to HTTP status codes (see
app/api/errors.py).  Anything that is not a LessonError is unclassified
and surfaces as ERROR.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    BAD_INPUT = "BAD_INPUT"  # missing/blank user, course or lesson id
    BAD_STATUS = "BAD_STATUS"
    BAD_PROGRESS = "BAD_PROGRESS"
    NOT_FOUND = "NOT_FOUND"  # lesson lookup miss
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"  # no aggregate row to update
    EMPTY_MESSAGE = "EMPTY_MESSAGE"
    CONFLICT = "CONFLICT"  # aggregate changed between read and commit
    UNAUTHORIZED = "UNAUTHORIZED"
    ERROR = "ERROR"


class LessonError(Exception):
    """A classified failure of a lesson operation."""

    def __init__(self, kind: ErrorKind, detail: str | None = None) -> None:
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
