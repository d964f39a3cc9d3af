"""Health check API routes.

Routes:
    GET /health - service status, cache and analytics state
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from search_proxy import __version__
from search_proxy.api.dependencies import get_services
from search_proxy.container import Services
from search_proxy.core.constants import HEALTH_CHECK_PATH


router = APIRouter(
    prefix=HEALTH_CHECK_PATH,
    tags=["Health"],
)


class HealthStatus(str, Enum):
    """Health status enum."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"


class CacheHealth(BaseModel):
    active_version: str
    versions: list[str]
    reachable: bool


class AnalyticsHealth(BaseModel):
    running: bool
    queue_depth: int
    written: int
    dropped: int


class HealthResponse(BaseModel):
    """Response model for health check.

    Attributes:
        status: degraded when the cache is unreachable or the
            analytics worker is not running; the proxy still serves
        service: Service name
        version: Service version
        timestamp: Check timestamp (ISO format)
        cache: Active cache instance state
        analytics: Analytics worker state
    """

    status: HealthStatus = Field(default=HealthStatus.HEALTHY)
    service: str
    version: str = __version__
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    cache: CacheHealth
    analytics: AnalyticsHealth


# Mounted at the prefix itself, so the path is exactly /health
@router.get("", response_model=HealthResponse)
async def health_check(services: Services = Depends(get_services)) -> HealthResponse:
    """Report service health without failing on degraded dependencies."""
    reachable = await services.cache.ping()
    recorder = services.recorder
    status = (
        HealthStatus.HEALTHY if reachable and recorder.is_running else HealthStatus.DEGRADED
    )
    return HealthResponse(
        status=status,
        service=services.settings.service_name,
        cache=CacheHealth(
            active_version=services.cache.active_version,
            versions=services.cache.versions,
            reachable=reachable,
        ),
        analytics=AnalyticsHealth(
            running=recorder.is_running,
            queue_depth=recorder.queue_depth,
            written=recorder.written,
            dropped=recorder.dropped,
        ),
    )
