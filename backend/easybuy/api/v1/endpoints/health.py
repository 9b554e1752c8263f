"""
Health check endpoints for the EasyBuy backend.

Endpoints:
- /health/live - liveness probe (is the app running?)
- /health/ready - readiness probe (can the app reach its database?)
- /health/db - row counts per table
"""

from __future__ import annotations

import time
from datetime import datetime, UTC
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from easybuy.core.config import settings
from easybuy.core.logging import get_logger
from easybuy.db.record_store import RecordStore
from easybuy.db.session import get_db

logger = get_logger(__name__)

router = APIRouter()

MARKETPLACE_TABLES = ("users", "vehicles", "vehicle_images", "orders", "payments", "wishlist")


# =============================================================================
# Response Models
# =============================================================================


class ReadinessResponse(BaseModel):
    """Readiness probe response."""

    status: str
    checks: dict[str, bool]
    latency_ms: float
    checked_at: str


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    status: str
    checked_at: str


class DatabaseStats(BaseModel):
    """Row counts of the marketplace tables."""

    status: str
    environment: str
    table_counts: dict[str, Any]
    checked_at: str


def _now() -> str:
    return datetime.now(UTC).isoformat()


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/live", response_model=LivenessResponse)
async def liveness_check():
    """
    Liveness probe.

    Always answers while the process is alive.
    """
    return LivenessResponse(status="alive", checked_at=_now())


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness probe.

    Runs SELECT 1 against the database.

    Raises:
        HTTPException: 503 if the database is unreachable
    """
    start_time = time.time()
    try:
        await db.execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.warning(f"Database readiness check failed: {e}")
        database_ok = False

    checks = {"database": database_ok}
    if not database_ok:
        logger.warning(
            "Readiness check failed",
            extra={"event": "readiness_failed", "checks": checks},
        )
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks, "message": "Database unavailable"},
        )

    return ReadinessResponse(
        status="ready",
        checks=checks,
        latency_ms=round((time.time() - start_time) * 1000, 2),
        checked_at=_now(),
    )


@router.get("/db", response_model=DatabaseStats)
async def database_stats(db: AsyncSession = Depends(get_db)):
    """Row counts of every marketplace table."""
    store = RecordStore(db)
    counts: dict[str, Any] = {}
    status = "healthy"
    for table in MARKETPLACE_TABLES:
        try:
            counts[table] = await store.count(table)
        except Exception as e:
            logger.error(f"Counting {table} failed: {e}")
            counts[table] = "unavailable"
            status = "degraded"

    return DatabaseStats(
        status=status,
        environment=settings.ENVIRONMENT,
        table_counts=counts,
        checked_at=_now(),
    )
