from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import ErrorKind
from app.models.principal import Principal
from app.services import token_service
from app.services.lesson_service import LessonService, lesson_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on every lesson endpoint.
    """
    if credentials is None:
        raise _unauthorized(ErrorKind.UNAUTHORIZED.value)
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    subject = claims["sub"]
    if not isinstance(subject, str) or not subject.strip():
        logger.warning("Token without usable subject rejected")
        raise _unauthorized("Invalid token")

    principal = Principal(user_id=subject.strip())
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


def get_lesson_service() -> LessonService:
    """Overridable in tests via app.dependency_overrides."""
    return lesson_service


CurrentUser = Annotated[Principal, Depends(require_user)]
Service = Annotated[LessonService, Depends(get_lesson_service)]
