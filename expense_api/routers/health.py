"""Health check endpoints for the load balancer and uptime monitoring."""

import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from expense_api.database import check_db_connection, measure_db_latency
from expense_api.settings import settings

router = APIRouter(prefix="/api/health", tags=["health"])

VERSION = "1.0.0"
_STARTED_AT = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    environment: str
    database: str
    version: str = VERSION
    timestamp: datetime


class DetailedHealthResponse(HealthResponse):
    database_latency_ms: Optional[float] = None
    uptime_seconds: int
    ocr_configured: bool


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """
    Liveness check. Always 200 while the process is up; database state is
    reported in the body.
    """
    db_ok = check_db_connection()
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        environment=settings.environment,
        database="connected" if db_ok else "unreachable",
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/detailed", response_model=DetailedHealthResponse)
def detailed_health_check():
    """Readiness check. Returns 503 if the database is unreachable."""
    latency = measure_db_latency()
    body = DetailedHealthResponse(
        status="ok" if latency is not None else "unhealthy",
        environment=settings.environment,
        database="connected" if latency is not None else "unreachable",
        timestamp=datetime.now(timezone.utc),
        database_latency_ms=latency,
        uptime_seconds=int(time.monotonic() - _STARTED_AT),
        ocr_configured=settings.ocr_enabled,
    )
    if latency is None:
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body
