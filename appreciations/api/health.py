"""
Health and diagnostics API.

Lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appreciations.core.database import check_connection, get_db, get_engine, metadata
from appreciations.core.logging import latency_bucket_ms, get_request_id

logger = logging.getLogger("appreciations")

router = APIRouter(prefix="/api/health", tags=["health"])
root_router = APIRouter(tags=["health"])


class DBHealth(BaseModel):
    connected: bool
    latency_ms: Optional[float] = None  # None when `now` is pinned by a test
    tables_present: List[str] = []


class HealthResponse(BaseModel):
    ok: bool
    db: DBHealth
    computed_at: str  # UTC ISO format


def required_tables() -> List[str]:
    return sorted(metadata.tables.keys())


@root_router.get("/healthz")
def healthz():
    """Liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    """Readiness check: DB connectivity + required tables."""
    try:
        db.execute(text("SELECT 1"))

        inspector = inspect(get_engine())
        missing = [t for t in required_tables() if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok"}
    except SQLAlchemyError as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})


@router.get("/db", response_model=HealthResponse)
def health_db(now: Optional[str] = Query(None)):
    """
    Database health and connectivity. No auth, no secrets.

    Args:
        now: Optional ISO timestamp for deterministic testing (overrides system time)
    """
    start = time.perf_counter()
    is_connected = check_connection()
    latency_ms = (time.perf_counter() - start) * 1000

    db_health = DBHealth(
        connected=is_connected,
        latency_ms=None if now else latency_ms,
    )

    if is_connected:
        try:
            db_health.tables_present = sorted(inspect(get_engine()).get_table_names())
        except Exception as e:
            logger.warning(f"[health] Failed to list tables: {e}")

    logger.info(
        "health.db",
        extra={
            "request_id": get_request_id(),
            "ok": is_connected,
            "latency_bucket": latency_bucket_ms(latency_ms if now is None else None),
        },
    )
    return HealthResponse(
        ok=is_connected,
        db=db_health,
        computed_at=now or datetime.now(timezone.utc).isoformat(),
    )
