"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.cycles.config_loader import get_prediction_config
from src.dependencies import AppSettings
from src.services.database import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("lunax.health")


@router.get("/health")
async def health_check(settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also performs a lightweight DB connectivity check and reports the
    prediction policy version in use.
    """
    db_ok = False
    try:
        pool = get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        db_ok = True
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "prediction_config": get_prediction_config().version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
