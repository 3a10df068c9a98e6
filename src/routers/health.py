"""Health check endpoint: public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import Engine
from src.models.observations import HealthResponse
from src.services import database

router = APIRouter(tags=["system"])
logger = logging.getLogger("vigil.health")


@router.get("/health", response_model=HealthResponse)
async def health_check(engine: Engine) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also performs a lightweight DB connectivity check when the asset
    database is configured.
    """
    settings = engine.settings
    database_status = "disabled"
    if database.is_configured():
        try:
            async with database.get_connection() as conn:
                await conn.fetchval("SELECT 1")
            database_status = "connected"
        except Exception as exc:
            logger.warning("Health check DB probe failed: %s", exc)
            database_status = "unreachable"

    return {
        "status": "degraded" if database_status == "unreachable" else "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "tracked_devices": len(engine.store),
        "live_subscribers": len(engine.subscribers),
        "sync_gate_policy": settings.sync_gate_policy,
        "last_synced_at": engine.scheduler.gate.last_synced_at,
        "sync_in_flight": engine.scheduler.in_flight,
        "database": database_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
