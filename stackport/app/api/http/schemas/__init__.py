"""API schema definitions for HTTP endpoints.

Modules:
    health: Health check response models
    deployments: Catalog and deployment request/response models
"""

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
from stackport.app.api.http.schemas.health import (
    AllServicesHealth,
    ClusterHealth,
    DatabaseHealth,
    LivenessResponse,
    OverallStatus,
    ReadinessResponse,
    ServiceHealthBase,
    ServiceStatus,
)

__all__ = [
    # Health schemas
    "ServiceStatus",
    "OverallStatus",
    "ServiceHealthBase",
    "DatabaseHealth",
    "ClusterHealth",
    "AllServicesHealth",
    "ReadinessResponse",
    "LivenessResponse",
    # Deployment schemas
    "DeploymentCreateRequest",
    "DeploymentUpdateRequest",
    "CatalogImage",
    "CatalogResponse",
    "DeploymentView",
    "DeploymentResponse",
    "DeploymentListResponse",
    "MessageResponse",
    "ErrorResponse",
]
