"""Logical deployment domain entity."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Deployment(BaseModel):
    """A user's desired managed workload.

    ``id`` and the timestamps are assigned by the record store; a freshly
    validated candidate carries ``id=0``. ``assigned_port`` stays 0 until the
    control plane has allocated a NodePort for the service.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(default=0, description="Record identifier")
    owner_id: int = Field(description="Identifier of the owning user")
    image: str = Field(default="", description="Catalog image name")
    volume_size_gib: int = Field(default=0, description="Persistent storage in GiB, 0 for none")
    replicas: int = Field(default=1, description="Desired pod count while running")
    env_vars: dict[str, str] = Field(default_factory=dict)
    running: bool = Field(default=True)
    assigned_port: int = Field(default=0, description="Cluster-assigned NodePort")
    created_at: datetime | None = None
    last_updated_at: datetime | None = None

    @property
    def has_volume(self) -> bool:
        return self.volume_size_gib > 0

    @property
    def desired_replicas(self) -> int:
        """Replica count the workload should have right now."""
        return self.replicas if self.running else 0
