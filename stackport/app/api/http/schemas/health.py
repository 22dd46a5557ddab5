"""Health check response schemas.

Status Terminology:
    - healthy: Service is fully operational
    - unhealthy: Service is not operational (critical failure)
    - degraded: Service answers but not as configured (e.g. in-memory cluster outside development)
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class ServiceStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


class OverallStatus(str, Enum):
    """Overall application readiness status.

    - READY: All critical services are operational
    - NOT_READY: One or more critical services are not operational
    """

    READY = "ready"
    NOT_READY = "not_ready"


# =============================================================================
# Service Models
# =============================================================================


class ServiceHealthBase(BaseModel):
    """Base model for individual service health check results."""

    model_config = ConfigDict(use_enum_values=True)

    status: ServiceStatus = Field(description="Current health status of the service")
    note: str | None = Field(
        default=None,
        description="Optional additional context about the status",
    )
    error: str | None = Field(
        default=None,
        description="Error message if status is unhealthy",
    )


class DatabaseHealth(ServiceHealthBase):
    """Health check result for the record store."""

    type: Annotated[
        str,
        Field(description="Database type (postgresql, sqlite)"),
    ]


class ClusterHealth(ServiceHealthBase):
    """Health check result for the Kubernetes control plane."""

    backend: str = Field(description="Control-plane backend (kr8s, memory)")
    context: str | None = Field(default=None, description="Active cluster context")
    namespace: str = Field(description="Namespace deployments are created in")


# =============================================================================
# Aggregate Models
# =============================================================================


class AllServicesHealth(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    database: DatabaseHealth
    cluster: ClusterHealth


class ReadinessResponse(BaseModel):
    """Response model for the /health/ready endpoint."""

    model_config = ConfigDict(use_enum_values=True)

    status: OverallStatus = Field(description="Overall application readiness status")
    environment: str = Field(
        description="Current deployment environment (development, production, etc.)"
    )
    checks: AllServicesHealth = Field(
        description="Individual service health check results"
    )


class LivenessResponse(BaseModel):
    """Response model for the /health endpoint (liveness probe).

    Only verifies the application process is running.
    """

    status: Annotated[
        str,
        Field(description="Always 'healthy' if the app is running"),
    ] = "healthy"
    service: Annotated[
        str,
        Field(description="Service identifier"),
    ] = "stackport"
