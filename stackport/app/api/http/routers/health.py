"""Health check endpoints.

Endpoint Summary:
    GET /health         - Liveness probe (app is running)
    GET /health/ready   - Readiness probe (database and control plane reachable)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from stackport.app.api.http.app_data import ApplicationDependencies
from stackport.app.api.http.schemas.health import (
    LivenessResponse,
    OverallStatus,
    ReadinessResponse,
)
from stackport.app.core.services.health_service import HealthCheckService

router = APIRouter(prefix="/health", tags=["health"])


def get_health_service(request: Request) -> HealthCheckService:
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return HealthCheckService(app_deps, request.app.state.config)


@router.get(
    "",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Basic health check - returns 200 if the application process is running.",
)
async def health() -> LivenessResponse:
    return LivenessResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All services are ready"},
        503: {
            "description": "The database or the control plane is not ready",
            "model": ReadinessResponse,
        },
    },
    summary="Readiness probe",
    description="Checks the record store and the Kubernetes control plane.",
)
async def readiness(
    health_service: HealthCheckService = Depends(get_health_service),
) -> ReadinessResponse | JSONResponse:
    """Returns 200 if every critical service is ready, 503 otherwise."""
    result = await health_service.check_all()

    if result.status == OverallStatus.NOT_READY:
        return JSONResponse(
            status_code=503,
            content=result.model_dump(mode="json"),
        )

    return result
