"""Cluster constants and project paths.

This module centralizes the magic strings and fixed values used when
building and managing cluster resources.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from stackport.utils.paths import get_project_root


@dataclass(frozen=True)
class ClusterConstants:
    """Constants for the cluster resources managed per deployment.

    All attributes are class-level and immutable.
    """

    DEFAULT_NAMESPACE: str = "default"

    # Label used to tie pods, services and volumes to one deployment
    APP_LABEL: str = "app"

    # Network service exposing the workload
    SERVICE_TYPE: str = "NodePort"
    SERVICE_PORT: int = 5432
    SERVICE_PROTOCOL: str = "TCP"
    NODE_PORT_MIN: int = 30000
    NODE_PORT_MAX: int = 32767

    # Storage
    STORAGE_UNIT: str = "Gi"
    ACCESS_MODE: str = "ReadWriteOnce"
    DEFAULT_HOST_PATH_ROOT: str = "/mnt"

    # Control-plane call behaviour
    DELETE_PROPAGATION: str = "Foreground"
    DEFAULT_CALL_TIMEOUT_SECONDS: float = 5.0

    # Object name suffixes
    WORKLOAD_SUFFIX: str = "-deployment"
    SERVICE_SUFFIX: str = "-service"
    VOLUME_SUFFIX: str = "-pv"
    CLAIM_SUFFIX: str = "-pv-claim"
    MOUNT_SUFFIX: str = "-volume"
    STORAGE_CLASS_SUFFIX: str = "-storage-class"


class ProjectPaths:
    """Path resolver for project-level files."""

    def __init__(self, project_root: Path) -> None:
        self._project_root = project_root

    @property
    def project_root(self) -> Path:
        return self._project_root

    @property
    def config_yaml(self) -> Path:
        """Get path to config.yaml."""
        return self._project_root / "config.yaml"

    @property
    def env_file(self) -> Path:
        """Get path to .env file."""
        return self._project_root / ".env"

    @property
    def secrets_keys_dir(self) -> Path:
        """Get path to secrets keys directory."""
        return self._project_root / "secrets" / "keys"


DEFAULT_CONSTANTS = ClusterConstants()
DEFAULT_PATHS = ProjectPaths(project_root=get_project_root())
