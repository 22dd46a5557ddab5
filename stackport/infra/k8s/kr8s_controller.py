"""Kr8s-based implementation of ClusterController.

Uses the kr8s library for native async Kubernetes operations.
"""

from __future__ import annotations

import copy
from typing import Any

import kr8s
from kr8s.asyncio.objects import (
    Deployment,
    PersistentVolume,
    PersistentVolumeClaim,
    Service,
)
from loguru import logger

from stackport.app.core.errors import ClusterAPIError, ConflictError, NotFoundError

from .controller import (
    ClusterController,
    Manifest,
    ObjectRef,
    ResourceKind,
    ref_of,
    resource_version,
)

_OBJECT_CLASSES: dict[ResourceKind, Any] = {
    ResourceKind.WORKLOAD: Deployment,
    ResourceKind.SERVICE: Service,
    ResourceKind.VOLUME: PersistentVolume,
    ResourceKind.CLAIM: PersistentVolumeClaim,
}


def _status_code(error: Exception) -> int | None:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


def _status_reason(error: Exception) -> str:
    status = getattr(error, "status", None)
    if isinstance(status, dict):
        return str(status.get("reason", ""))
    return ""


def translate_error(error: Exception, ref: ObjectRef, action: str) -> Exception:
    """Map a kr8s/transport exception to the domain error taxonomy."""
    if isinstance(error, kr8s.NotFoundError) or _status_code(error) == 404:
        return NotFoundError(f"{ref} not found")
    if _status_code(error) == 409:
        if _status_reason(error) == "AlreadyExists":
            return ClusterAPIError(f"Cannot {action} {ref}: already exists", details=str(error))
        return ConflictError(f"Conflict while trying to {action} {ref}", details=str(error))
    return ClusterAPIError(f"Failed to {action} {ref}", details=str(error))


class Kr8sClusterController(ClusterController):
    """Cluster controller using the kr8s library.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. When using run_sync() which calls asyncio.run(),
    each call creates a new event loop, making the cached API unusable.
    """

    def __init__(self, kubeconfig: str | None = None, context: str | None = None) -> None:
        self._kubeconfig = kubeconfig or None
        self._context = context or None

    async def _get_api(self) -> Any:  # Returns kr8s._api.Api
        """Create a kr8s API client bound to the running event loop."""
        return await kr8s.asyncio.api(kubeconfig=self._kubeconfig, context=self._context)

    def _object(self, kind: ResourceKind, manifest: Manifest, api: Any) -> Any:
        cls = _OBJECT_CLASSES[kind]
        return cls(copy.deepcopy(manifest), api=api)

    # =========================================================================
    # Object Operations
    # =========================================================================

    async def create(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        ref = ref_of(kind, manifest)
        try:
            api = await self._get_api()
            obj = self._object(kind, manifest, api)
            await obj.create()
            logger.debug(f"Created {ref}")
            return dict(obj.raw)
        except Exception as e:
            raise translate_error(e, ref, "create") from e

    async def get(
        self, kind: ResourceKind, name: str, namespace: str | None = None
    ) -> Manifest:
        ref = ObjectRef(kind=kind, name=name, namespace=namespace if kind.namespaced else None)
        try:
            api = await self._get_api()
            cls = _OBJECT_CLASSES[kind]
            if kind.namespaced:
                obj = await cls.get(name, namespace=namespace, api=api)
            else:
                obj = await cls.get(name, api=api)
            return copy.deepcopy(dict(obj.raw))
        except Exception as e:
            raise translate_error(e, ref, "read") from e

    async def replace(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        """Write back ``manifest`` as a merge patch pinned to its resourceVersion.

        Including ``metadata.resourceVersion`` in the patch makes the API
        server reject it with 409 if the object changed after it was read.
        """
        ref = ref_of(kind, manifest)
        version = resource_version(manifest)
        if version is None:
            raise ClusterAPIError(f"Cannot update {ref} without a resourceVersion")
        patch = {
            "metadata": {"resourceVersion": version},
            "spec": manifest["spec"],
        }
        try:
            api = await self._get_api()
            obj = self._object(kind, manifest, api)
            await obj.patch(patch)
            logger.debug(f"Updated {ref}")
            return dict(obj.raw)
        except Exception as e:
            raise translate_error(e, ref, "update") from e

    async def delete(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str | None = None,
        *,
        propagation_policy: str | None = None,
    ) -> None:
        metadata: dict[str, str] = {"name": name}
        if kind.namespaced and namespace:
            metadata["namespace"] = namespace
        manifest = {"apiVersion": kind.api_version, "kind": kind.value, "metadata": metadata}
        ref = ref_of(kind, manifest)
        try:
            api = await self._get_api()
            obj = self._object(kind, manifest, api)
            await obj.delete(propagation_policy=propagation_policy)
            logger.debug(f"Deleted {ref} (propagation={propagation_policy})")
        except Exception as e:
            raise translate_error(e, ref, "delete") from e

    # =========================================================================
    # Cluster Context
    # =========================================================================

    async def ping(self) -> bool:
        try:
            api = await self._get_api()
            await api.version()
            return True
        except Exception as e:
            logger.debug(f"Control plane ping failed: {e}")
            return False

    async def get_current_context(self) -> str:
        try:
            api = await self._get_api()
            return api.auth.active_context or "unknown"
        except Exception:
            return "unknown"
