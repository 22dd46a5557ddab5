"""Abstract cluster controller interface.

Defines the control-plane operations the orchestrator relies on. They can be
implemented by different backends (the kr8s library, an in-memory control
plane for local development and tests).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

Manifest = dict[str, Any]

# =============================================================================
# Data Types
# =============================================================================


class ResourceKind(str, Enum):
    """Kinds of cluster objects managed per deployment."""

    WORKLOAD = "Deployment"
    SERVICE = "Service"
    VOLUME = "PersistentVolume"
    CLAIM = "PersistentVolumeClaim"

    @property
    def api_version(self) -> str:
        return "apps/v1" if self is ResourceKind.WORKLOAD else "v1"

    @property
    def namespaced(self) -> bool:
        return self is not ResourceKind.VOLUME


@dataclass(frozen=True)
class ObjectRef:
    """Identifies one cluster object."""

    kind: ResourceKind
    name: str
    namespace: str | None = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind.value}/{self.namespace}/{self.name}"
        return f"{self.kind.value}/{self.name}"


def ref_of(kind: ResourceKind, manifest: Manifest) -> ObjectRef:
    """Build an ObjectRef from a manifest's metadata."""
    metadata = manifest.get("metadata", {})
    namespace = metadata.get("namespace") if kind.namespaced else None
    return ObjectRef(kind=kind, name=metadata.get("name", ""), namespace=namespace)


def resource_version(manifest: Manifest) -> str | None:
    return manifest.get("metadata", {}).get("resourceVersion")


# =============================================================================
# Abstract Controller
# =============================================================================


class ClusterController(ABC):
    """Abstract base class for control-plane operations.

    All methods are async. Use ``run_sync()`` to call from synchronous code.

    Implementations translate backend failures into the domain taxonomy:
    ``NotFoundError`` for absent objects, ``ConflictError`` for writes made
    against a stale resource version and ``ClusterAPIError`` for everything
    else.
    """

    @abstractmethod
    async def create(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Create an object.

        Args:
            kind: Kind of object to create
            manifest: Full object manifest

        Returns:
            The object as stored by the control plane, including
            server-assigned fields such as resourceVersion and nodePort
        """
        ...

    @abstractmethod
    async def get(
        self, kind: ResourceKind, name: str, namespace: str | None = None
    ) -> Manifest:
        """Fetch an object by name.

        Args:
            kind: Kind of object
            name: Object name
            namespace: Namespace, ignored for cluster-scoped kinds

        Returns:
            The current object, carrying its resourceVersion
        """
        ...

    @abstractmethod
    async def replace(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Write back a modified object.

        The manifest must carry the ``metadata.resourceVersion`` it was read
        at; the write is rejected with ``ConflictError`` if the object has
        changed since.

        Returns:
            The object as stored after the write
        """
        ...

    @abstractmethod
    async def delete(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str | None = None,
        *,
        propagation_policy: str | None = None,
    ) -> None:
        """Delete an object.

        Args:
            kind: Kind of object
            name: Object name
            namespace: Namespace, ignored for cluster-scoped kinds
            propagation_policy: "Foreground", "Background" or "Orphan"
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the control plane is reachable.

        Returns:
            True if the API server answered, False otherwise
        """
        ...

    @abstractmethod
    async def get_current_context(self) -> str:
        """Name of the cluster context in use, or "unknown"."""
        ...
