"""Health document served to the monitoring collaborator."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthState(str, Enum):
    """Health classification shared by every component."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthReport(BaseModel):
    """What a component returns from `get_health_status()`."""

    status: HealthState
    details: dict[str, Any] = Field(default_factory=dict)


class ServiceHealth(BaseModel):
    """Health of a single component.

    Attributes:
        service: Component name (e.g., "youtube", "cache")
        status: healthy, degraded or unhealthy
        response_time: Milliseconds spent producing the report
        details: Component-specific diagnostics
        error: Short explanation when not healthy
    """

    service: str
    status: HealthState
    response_time: float = Field(..., ge=0, description="Probe duration in ms")
    details: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class HealthSummary(BaseModel):
    """Counts of components per health state."""

    total: int = Field(0, ge=0)
    healthy: int = Field(0, ge=0)
    degraded: int = Field(0, ge=0)
    unhealthy: int = Field(0, ge=0)


class SystemHealthResponse(BaseModel):
    """Aggregated health of every registered component."""

    status: HealthState
    timestamp: datetime
    uptime: float = Field(..., ge=0, description="Seconds since startup")
    services: list[ServiceHealth] = Field(default_factory=list)
    summary: HealthSummary

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "degraded",
                "timestamp": "2025-01-01T00:00:00Z",
                "uptime": 42.0,
                "services": [
                    {
                        "service": "cache",
                        "status": "degraded",
                        "response_time": 0.1,
                        "details": {"primary_connected": False},
                        "error": "Cache service issues detected",
                    }
                ],
                "summary": {"total": 1, "healthy": 0, "degraded": 1, "unhealthy": 0},
            }
        }
    )
