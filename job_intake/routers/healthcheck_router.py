"""
Health endpoints for orchestration probes.

- /health: MongoDB status with latency
- /health/live: the process is up
- /health/ready: MongoDB answers, the application indexes exist and the services are wired
"""

import time
from datetime import datetime

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from job_intake.core.config import settings
from job_intake.core.database import db_manager

router = APIRouter(prefix="/health", tags=["healthcheck"])


class DependencyStatus(BaseModel):
    name: str
    healthy: bool
    latency_ms: float


class HealthResponse(BaseModel):
    status: str
    service: str
    environment: str
    timestamp: str
    dependencies: list[DependencyStatus]


class ProbeResponse(BaseModel):
    status: str
    timestamp: str
    checks: dict[str, bool] = {}


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


async def _mongodb_status() -> DependencyStatus:
    started = time.perf_counter()
    healthy = await db_manager.ping()
    return DependencyStatus(
        name="mongodb",
        healthy=healthy,
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
    )


@router.get("", response_model=HealthResponse, summary="Dependency health")
async def health_check():
    """503 when MongoDB, which holds both records and resumes, is unreachable."""
    mongodb = await _mongodb_status()
    response = HealthResponse(
        status="healthy" if mongodb.healthy else "unhealthy",
        service=settings.service_name,
        environment=settings.environment,
        timestamp=_timestamp(),
        dependencies=[mongodb],
    )
    if not mongodb.healthy:
        raise HTTPException(status_code=503, detail=response.model_dump())
    return response


@router.get("/live", response_model=ProbeResponse, summary="Liveness probe")
async def liveness_probe():
    return ProbeResponse(status="alive", timestamp=_timestamp())


@router.get("/ready", response_model=ProbeResponse, summary="Readiness probe")
async def readiness_probe(request: Request):
    mongodb = await db_manager.ping()
    checks = {
        "mongodb": mongodb,
        "indexes": mongodb and await db_manager.try_ensure_indexes(),
        "services": getattr(request.app.state, "services", None) is not None,
    }
    response = ProbeResponse(
        status="ready" if all(checks.values()) else "not_ready",
        timestamp=_timestamp(),
        checks=checks,
    )
    if response.status != "ready":
        raise HTTPException(status_code=503, detail=response.model_dump())
    return response
