"""
Health endpoints.

/api/health answers without touching dependencies (liveness).
/api/health/detailed checks them and answers 503 only when a critical one
is down; a missing Redis reports "degraded" with 200.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal, engine
from shared.infrastructure.events import check_redis_health
from shared.utils.health import HealthStatus, aggregate_health_checks, health_check_with_timeout


router = APIRouter(prefix="/api", tags=["health"])

SERVICE_NAME = "table-share-api"


@router.get("/health")
def health_check():
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": SERVICE_NAME,
        "environment": settings.environment,
    }


@health_check_with_timeout(timeout=3.0, component="database")
async def check_database_health() -> dict:
    with SessionLocal() as db:
        db.execute(text("SELECT 1"))
    return {"dialect": engine.dialect.name}


@router.get("/health/detailed")
async def detailed_health_check():
    checks = [check_database_health()]
    if settings.events_enabled:
        checks.append(check_redis_health())

    summary = await aggregate_health_checks(checks)
    body = {
        "service": SERVICE_NAME,
        "environment": settings.environment,
        "status": summary["status"],
        "dependencies": summary["components"],
    }
    if summary["status"] == HealthStatus.UNHEALTHY.value:
        return JSONResponse(content=body, status_code=503)
    return body
