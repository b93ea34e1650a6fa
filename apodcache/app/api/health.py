"""Health and monitoring endpoints.

Neither endpoint calls the APOD API: every upstream request spends quota,
so the upstream component is reported from the rate-limit tracker.
"""

import math
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from apodcache.app.api.dependencies import get_resolver, get_store
from apodcache.app.core.logging import get_logger
from apodcache.app.db.store import PictureStore
from apodcache.app.exceptions import StoreError
from apodcache.app.services.resolver import RangeResolver

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health")
async def health(
    resolver: RangeResolver = Depends(get_resolver),
    store: PictureStore = Depends(get_store),
) -> dict[str, Any]:
    """Health check with database and upstream quota status."""
    health_status: dict[str, Any] = {
        "status": "ok",
        "components": {}
    }

    try:
        cached = await store.count()
        health_status["components"]["database"] = {"status": "ok", "cached_pictures": cached}
    except (SQLAlchemyError, StoreError, OSError) as e:
        logger.warning(f"Health check: database unavailable: {e}")
        health_status["status"] = "degraded"
        health_status["components"]["database"] = {
            "status": "error",
            "error": str(e)[:100]  # Truncate for security
        }

    state = await resolver.tracker.snapshot()
    retry_after = await resolver.tracker.retry_after()
    upstream: dict[str, Any] = {"status": "ok", "requests_left": state.requests_left}
    if retry_after is not None:
        health_status["status"] = "degraded"
        upstream["status"] = "rate_limited"
        upstream["retry_after_seconds"] = max(1, math.ceil(retry_after.total_seconds()))
    health_status["components"]["upstream"] = upstream

    return health_status


@router.get("/stats")
async def stats(resolver: RangeResolver = Depends(get_resolver)) -> dict[str, Any]:
    """Concurrency gate and rate-limit statistics."""
    state = await resolver.tracker.snapshot()
    return {
        "gate": resolver.gate.get_stats(),
        "rate_limit": state.to_dict(),
    }
