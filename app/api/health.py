"""Health and readiness endpoints.

  /health (liveness): "is this process alive?"  Always 200; the body's
    ``status`` says whether a dependency is degraded.
  /ready (readiness): "can this instance serve lesson traffic?"  503 when
    the document store is unreachable, so the load balancer stops routing
    here without restarting the container.  Redis is not required: the
    activity log and the cache are best-effort.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status

from app.db.redis import redis_pool
from app.store.backend import document_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _store_ok() -> bool:
    try:
        await document_store.ping()
    except Exception:
        logger.exception("Document store ping failed")
        return False
    return True


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if await _store_ok():
        checks["store"] = "ok"
    else:
        checks["store"] = "degraded"
        overall = "degraded"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if not await _store_ok():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
