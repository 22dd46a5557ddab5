"""Catalog and deployment endpoints.

Endpoint Summary:
    GET    /deployments             - List the image catalog
    GET    /users/deployments       - List the caller's deployments
    POST   /users/deployments       - Create a deployment
    GET    /users/deployments/{id}  - Show one deployment
    PUT    /users/deployments/{id}  - Update (scale, resize, pause, re-port) a deployment
    DELETE /users/deployments/{id}  - Delete a deployment and its cluster resources
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from stackport.app.api.http.deps import get_deployment_service, get_owner_id
from stackport.app.api.http.schemas.deployments import (
    CatalogImage,
    CatalogResponse,
    DeploymentCreateRequest,
    DeploymentListResponse,
    DeploymentResponse,
    DeploymentUpdateRequest,
    DeploymentView,
    ErrorResponse,
    MessageResponse,
)
from stackport.app.core.errors import NotFoundError
from stackport.app.core.services.deployment_service import DeploymentService

catalog_router = APIRouter(prefix="/deployments", tags=["catalog"])
router = APIRouter(prefix="/users/deployments", tags=["deployments"])

ERROR_RESPONSES: dict[int | str, dict] = {
    404: {"description": "Deployment not found", "model": ErrorResponse},
    422: {"description": "Validation failed", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


def parse_deployment_id(deployment_id: str) -> int:
    """Path ids that are not positive integers address nothing."""
    if not deployment_id.isdigit() or int(deployment_id) < 1:
        raise NotFoundError(f"Deployment {deployment_id!r} not found")
    return int(deployment_id)


# =============================================================================
# Catalog
# =============================================================================


@catalog_router.get(
    "",
    response_model=CatalogResponse,
    summary="List available images",
)
async def list_catalog(
    service: DeploymentService = Depends(get_deployment_service),
) -> CatalogResponse:
    entries = service.list_catalog()
    return CatalogResponse(
        number=len(entries),
        available={name: CatalogImage.from_entry(entry) for name, entry in entries},
    )


# =============================================================================
# Owner-scoped deployments
# =============================================================================


@router.get("", response_model=DeploymentListResponse, summary="List my deployments")
def list_deployments(
    owner_id: int = Depends(get_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> DeploymentListResponse:
    return DeploymentListResponse(
        deployments=[DeploymentView.from_entity(d) for d in service.list_deployments(owner_id)]
    )


@router.post(
    "",
    response_model=DeploymentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Create a deployment",
)
async def create_deployment(
    request: DeploymentCreateRequest,
    owner_id: int = Depends(get_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> DeploymentResponse:
    """Validate, record and create the cluster resources of a new deployment.

    The response carries the NodePort the cluster allocated.
    """
    deployment = await service.create_deployment(
        owner_id,
        request.image,
        request.volume,
        request.replicas,
        request.env_vars,
    )
    return DeploymentResponse(deployment=DeploymentView.from_entity(deployment))


@router.get(
    "/{deployment_id}",
    response_model=DeploymentResponse,
    responses=ERROR_RESPONSES,
    summary="Show a deployment",
)
def get_deployment(
    deployment_id: str,
    owner_id: int = Depends(get_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> DeploymentResponse:
    deployment = service.get_deployment(parse_deployment_id(deployment_id), owner_id)
    return DeploymentResponse(deployment=DeploymentView.from_entity(deployment))


@router.put(
    "/{deployment_id}",
    response_model=DeploymentResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses=ERROR_RESPONSES,
    summary="Update a deployment",
)
async def update_deployment(
    deployment_id: str,
    request: DeploymentUpdateRequest,
    owner_id: int = Depends(get_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> DeploymentResponse:
    deployment = await service.update_deployment(
        parse_deployment_id(deployment_id),
        owner_id,
        replicas=request.replicas,
        volume=request.volume,
        env_vars=request.env_vars,
        running=request.running,
        port=request.port,
    )
    return DeploymentResponse(deployment=DeploymentView.from_entity(deployment))


@router.delete(
    "/{deployment_id}",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    summary="Delete a deployment",
)
async def delete_deployment(
    deployment_id: str,
    owner_id: int = Depends(get_owner_id),
    service: DeploymentService = Depends(get_deployment_service),
) -> MessageResponse:
    await service.delete_deployment(parse_deployment_id(deployment_id), owner_id)
    return MessageResponse(message="deployment successfully deleted")
