"""
Health check endpoints.

Provides system health and readiness checks, and a diagnostics view over
the in-memory request and error buffers filled by the request logging
middleware.
"""

import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from plotline.api.deps import DatabaseDep
from plotline.config import get_settings
from plotline.models.common import HealthResponse
from plotline.models.tables import Project
from plotline.services.database import check_database_connection

logger = logging.getLogger(__name__)

# In-memory buffers for diagnostics
_recent_errors: deque = deque(maxlen=100)
_recent_requests: deque = deque(maxlen=100)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def log_error(error: dict) -> None:
    """Add an error to the recent errors buffer."""
    error["timestamp"] = _now().isoformat()
    _recent_errors.append(error)


def log_request(request: dict) -> None:
    """Add a request to the recent requests buffer."""
    request["timestamp"] = _now().isoformat()
    _recent_requests.append(request)


router = APIRouter()


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the API is healthy and return service status.",
)
async def health_check() -> HealthResponse:
    """
    Check API health status.

    Returns basic health information including version and environment.
    Also checks database connectivity.
    """
    settings = get_settings()

    db_healthy = await check_database_connection()

    return HealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept traffic.",
)
async def readiness_check() -> dict:
    """Lightweight check for load balancers and orchestrators."""
    return {"ready": True}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    return {"alive": True}


# =============================================================================
# Diagnostics Endpoint
# =============================================================================

class ServiceStatus(BaseModel):
    """Status of a backing service."""
    name: str
    status: str  # healthy, unhealthy
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class DiagnosticsResponse(BaseModel):
    """Comprehensive diagnostics response."""
    timestamp: datetime
    status: str
    version: str
    environment: str

    services: list[ServiceStatus]

    recent_errors: list[dict] = Field(default_factory=list)
    request_logs: list[dict] = Field(default_factory=list)

    projects_count: int = 0

    # Configuration (non-sensitive)
    config: dict = Field(default_factory=dict)


@router.get(
    "/diagnostics",
    response_model=DiagnosticsResponse,
    summary="System diagnostics",
    description="Get system diagnostics for debugging.",
)
async def get_diagnostics(db: DatabaseDep) -> DiagnosticsResponse:
    """
    Get detailed system diagnostics.

    Returns:
    - Database health with latency
    - Recent errors (last 100)
    - Recent request logs (last 50)
    - Project count
    - Non-sensitive configuration
    """
    settings = get_settings()

    start = time.time()
    db_healthy = await check_database_connection()
    services = [ServiceStatus(
        name="database",
        status="healthy" if db_healthy else "unhealthy",
        latency_ms=round((time.time() - start) * 1000, 2),
    )]

    projects_count = 0
    try:
        projects_count = db.scalar(select(func.count()).select_from(Project)) or 0
    except SQLAlchemyError as e:
        logger.warning(f"Could not count projects for diagnostics: {e}")

    return DiagnosticsResponse(
        timestamp=_now(),
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        environment=settings.environment,
        services=services,
        recent_errors=list(_recent_errors),
        request_logs=list(_recent_requests)[-50:],
        projects_count=projects_count,
        config={
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
            "cors_origins": settings.cors_origins,
            "word_count_mode": settings.word_count_mode,
        },
    )
