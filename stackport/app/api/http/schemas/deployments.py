"""Pydantic schemas for deployment API endpoints.

This module defines request and response models for the image catalog and
the owner-scoped deployment endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from stackport.app.core.catalog import CatalogEntry
from stackport.app.entities.deployment.entity import Deployment

# =============================================================================
# Request Models
# =============================================================================


class DeploymentCreateRequest(BaseModel):
    """Request model for creating a deployment.

    Example:
        ```json
        {
            "image": "postgres",
            "volume": 1,
            "replicas": 1,
            "env_vars": {
                "POSTGRES_DB": "app",
                "POSTGRES_PASSWORD": "secret",
                "POSTGRES_USER": "app"
            }
        }
        ```
    """

    image: str = Field(default="", description="Catalog image name")
    volume: int = Field(default=0, description="Persistent storage in GiB")
    replicas: int = Field(default=0, description="Number of pods while running")
    env_vars: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables; must match the image's required names",
    )


class DeploymentUpdateRequest(BaseModel):
    """Request model for updating a deployment.

    Every field is applied; ``port`` 0 keeps the current NodePort and
    ``running`` false pauses the deployment (0 replicas).
    """

    port: int = Field(default=0, description="Requested NodePort, 0 to keep the current one")
    volume: int = Field(default=0, description="Persistent storage in GiB")
    replicas: int = Field(default=0, description="Number of pods while running")
    env_vars: dict[str, str] = Field(default_factory=dict)
    running: bool = Field(default=False, description="Whether pods should run")


# =============================================================================
# Response Models
# =============================================================================


class CatalogImage(BaseModel):
    volume: bool = Field(description="Whether the image supports persistent storage")
    env_vars: list[str] = Field(description="Environment variables the image requires")

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> CatalogImage:
        return cls(volume=entry.supports_volume, env_vars=sorted(entry.required_env_vars))


class CatalogResponse(BaseModel):
    """Response model for the image catalog listing."""

    number: int = Field(description="Number of available images")
    available: dict[str, CatalogImage] = Field(description="Images keyed by name")


class DeploymentView(BaseModel):
    """Public representation of a deployment (owner id is never exposed)."""

    id: int
    image: str
    port: int = Field(description="Cluster-assigned NodePort")
    volume: int = Field(description="Persistent storage in GiB")
    replicas: int
    env_vars: dict[str, str]
    running: bool
    created_at: datetime | None = None
    last_updated: datetime | None = None

    @classmethod
    def from_entity(cls, deployment: Deployment) -> DeploymentView:
        return cls(
            id=deployment.id,
            image=deployment.image,
            port=deployment.assigned_port,
            volume=deployment.volume_size_gib,
            replicas=deployment.replicas,
            env_vars=deployment.env_vars,
            running=deployment.running,
            created_at=deployment.created_at,
            last_updated=deployment.last_updated_at,
        )


class DeploymentResponse(BaseModel):
    deployment: DeploymentView


class DeploymentListResponse(BaseModel):
    deployments: list[DeploymentView]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Error envelope: a message, or field -> message for validation failures."""

    error: str | dict[str, str]
