# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health, liveness and readiness endpoints for the API.
"""

import time
from datetime import datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.api.components import GovernanceComponents
from src.api.dependencies import Components
from src.utils.datetime import utc_now

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

NOT_CONFIGURED = "not_configured"


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class ComponentsHealth(BaseModel):
    """All components health status."""
    database: ComponentHealth
    redis: ComponentHealth
    scheduler: ComponentHealth


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: ComponentsHealth


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database(components: GovernanceComponents) -> ComponentHealth:
    """Check the audit database connection."""
    if components.database is None:
        return ComponentHealth(status=NOT_CONFIGURED)

    start = time.time()
    reachable = await components.database.check_connection()
    latency = (time.time() - start) * 1000
    if not reachable:
        return ComponentHealth(status="unhealthy", message="Database unreachable")
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


async def check_redis(components: GovernanceComponents) -> ComponentHealth:
    """Check the Redis connection."""
    if components.redis_client is None:
        return ComponentHealth(status=NOT_CONFIGURED)

    start = time.time()
    reachable = await components.redis_client.ping()
    latency = (time.time() - start) * 1000
    if not reachable:
        # Cache and limiter are failing open
        return ComponentHealth(status="degraded", message="Redis unreachable")
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


def check_scheduler(components: GovernanceComponents) -> ComponentHealth:
    """Report whether maintenance jobs are running."""
    if not components.settings.maintenance.enabled:
        return ComponentHealth(status=NOT_CONFIGURED)
    if components.scheduler.is_running:
        return ComponentHealth(status="healthy")
    return ComponentHealth(status="degraded", message="Maintenance scheduler not running")


def _overall_status(statuses: list[str]) -> str:
    if any(s == "unhealthy" for s in statuses):
        return "unhealthy"
    if any(s == "degraded" for s in statuses):
        return "degraded"
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health_check(components: Components) -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with detailed status.
    """
    db_health = await check_database(components)
    redis_health = await check_redis(components)
    scheduler_health = check_scheduler(components)

    return HealthResponse(
        status=_overall_status([db_health.status, redis_health.status, scheduler_health.status]),
        timestamp=utc_now(),
        version="1.0.0",
        environment=components.settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        components=ComponentsHealth(
            database=db_health,
            redis=redis_health,
            scheduler=scheduler_health,
        ),
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Report that the process is serving requests."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(components: Components) -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Only the audit database gates readiness; Redis outages degrade the
    cache and the limiter to fail-open instead.

    Returns:
        ReadinessResponse with individual check results.
    """
    db_health = await check_database(components)
    redis_health = await check_redis(components)

    checks: dict[str, Any] = {
        "database": {"status": db_health.status, "latency_ms": db_health.latency_ms},
        "redis": {"status": redis_health.status, "latency_ms": redis_health.latency_ms},
    }
    return ReadinessResponse(ready=db_health.status != "unhealthy", checks=checks)
