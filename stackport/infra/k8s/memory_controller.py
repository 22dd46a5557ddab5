"""In-memory control plane.

Behaves like a single Kubernetes API server for the object kinds Stackport
manages: it versions every object, allocates NodePorts from the node-port
range, rejects writes made against a stale resource version and reports
missing objects. Used for local development (``cluster.backend: memory``)
and as the test double for the orchestrator.
"""

from __future__ import annotations

import copy
import itertools
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import override

from loguru import logger

from stackport.app.core.errors import (
    ClusterAPIError,
    ConflictError,
    NotFoundError,
    StackportError,
)
from stackport.infra.constants import DEFAULT_CONSTANTS

from .controller import (
    ClusterController,
    Manifest,
    ObjectRef,
    ResourceKind,
    ref_of,
    resource_version,
)


@dataclass
class InjectedFault:
    """A failure to raise on a future matching call."""

    operation: str
    kind: ResourceKind | None
    error: StackportError
    remaining: int = 1

    def matches(self, operation: str, kind: ResourceKind) -> bool:
        return self.operation == operation and self.kind in (None, kind)


@dataclass
class CallRecord:
    operation: str
    ref: ObjectRef


@dataclass
class _Store:
    objects: dict[ObjectRef, Manifest] = field(default_factory=dict)
    allocated_ports: set[int] = field(default_factory=set)


class InMemoryClusterController(ClusterController):
    """Single-process control plane with optimistic concurrency."""

    def __init__(self, namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE) -> None:
        self.default_namespace = namespace
        self._store = _Store()
        self._versions = itertools.count(1)
        self._faults: deque[InjectedFault] = deque()
        self.calls: list[CallRecord] = []

    # =========================================================================
    # Test hooks
    # =========================================================================

    def inject_fault(
        self,
        operation: str,
        error: StackportError,
        *,
        kind: ResourceKind | None = None,
        times: int = 1,
    ) -> None:
        """Fail the next ``times`` calls of ``operation`` (create/get/replace/delete)."""
        self._faults.append(InjectedFault(operation, kind, error, times))

    def touch(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        """Bump an object's resource version as if another writer had updated it."""
        ref = self._ref(kind, name, namespace)
        if ref not in self._store.objects:
            raise NotFoundError(f"{ref} not found")
        self._store.objects[ref]["metadata"]["resourceVersion"] = self._next_version()

    def objects(self, kind: ResourceKind | None = None) -> list[Manifest]:
        """Snapshot of stored objects, optionally filtered by kind."""
        return [
            copy.deepcopy(obj)
            for ref, obj in self._store.objects.items()
            if kind is None or ref.kind is kind
        ]

    def exists(self, kind: ResourceKind, name: str, namespace: str | None = None) -> bool:
        return self._ref(kind, name, namespace) in self._store.objects

    # =========================================================================
    # ClusterController
    # =========================================================================

    @override
    async def create(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        obj = copy.deepcopy(manifest)
        if kind.namespaced:
            obj.setdefault("metadata", {}).setdefault("namespace", self.default_namespace)
        ref = ref_of(kind, obj)
        self._record("create", ref)

        if ref in self._store.objects:
            raise ClusterAPIError(f"Cannot create {ref}: already exists")
        if kind is ResourceKind.SERVICE:
            self._allocate_node_ports(obj, previous=None)

        metadata = obj["metadata"]
        metadata["uid"] = str(uuid.uuid4())
        metadata["resourceVersion"] = self._next_version()
        self._store.objects[ref] = obj
        logger.debug(f"[memory] created {ref}")
        return copy.deepcopy(obj)

    @override
    async def get(
        self, kind: ResourceKind, name: str, namespace: str | None = None
    ) -> Manifest:
        ref = self._ref(kind, name, namespace)
        self._record("get", ref)
        try:
            return copy.deepcopy(self._store.objects[ref])
        except KeyError:
            raise NotFoundError(f"{ref} not found") from None

    @override
    async def replace(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        obj = copy.deepcopy(manifest)
        if kind.namespaced:
            obj.setdefault("metadata", {}).setdefault("namespace", self.default_namespace)
        ref = ref_of(kind, obj)
        self._record("replace", ref)

        current = self._store.objects.get(ref)
        if current is None:
            raise NotFoundError(f"{ref} not found")

        sent_version = resource_version(obj)
        if sent_version != current["metadata"]["resourceVersion"]:
            raise ConflictError(
                f"Operation cannot be fulfilled on {ref}: the object has been modified",
                details=f"sent resourceVersion={sent_version}",
            )

        if kind is ResourceKind.SERVICE:
            self._allocate_node_ports(obj, previous=current)

        obj["metadata"]["uid"] = current["metadata"]["uid"]
        obj["metadata"]["resourceVersion"] = self._next_version()
        self._store.objects[ref] = obj
        logger.debug(f"[memory] updated {ref}")
        return copy.deepcopy(obj)

    @override
    async def delete(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str | None = None,
        *,
        propagation_policy: str | None = None,
    ) -> None:
        ref = self._ref(kind, name, namespace)
        self._record("delete", ref)
        obj = self._store.objects.pop(ref, None)
        if obj is None:
            raise NotFoundError(f"{ref} not found")
        if kind is ResourceKind.SERVICE:
            for port in obj["spec"].get("ports", []):
                self._store.allocated_ports.discard(port.get("nodePort"))
        logger.debug(f"[memory] deleted {ref} (propagation={propagation_policy})")

    @override
    async def ping(self) -> bool:
        return True

    @override
    async def get_current_context(self) -> str:
        return "in-memory"

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ref(self, kind: ResourceKind, name: str, namespace: str | None) -> ObjectRef:
        if not kind.namespaced:
            return ObjectRef(kind=kind, name=name)
        return ObjectRef(kind=kind, name=name, namespace=namespace or self.default_namespace)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _record(self, operation: str, ref: ObjectRef) -> None:
        self.calls.append(CallRecord(operation, ref))
        for fault in list(self._faults):
            if fault.matches(operation, ref.kind):
                fault.remaining -= 1
                if fault.remaining <= 0:
                    self._faults.remove(fault)
                raise fault.error

    def _allocate_node_ports(self, obj: Manifest, previous: Manifest | None) -> None:
        """Assign or validate the nodePort of every port of a NodePort service."""
        if obj["spec"].get("type") != "NodePort":
            return

        previous_ports = set()
        if previous is not None:
            previous_ports = {
                p.get("nodePort") for p in previous["spec"].get("ports", []) if p.get("nodePort")
            }

        requested: set[int] = set()
        for port in obj["spec"].get("ports", []):
            node_port = port.get("nodePort")
            if not node_port:
                port["nodePort"] = self._free_port(exclude=requested)
            else:
                if not DEFAULT_CONSTANTS.NODE_PORT_MIN <= node_port <= DEFAULT_CONSTANTS.NODE_PORT_MAX:
                    raise ClusterAPIError(
                        f"Invalid value: {node_port}: provided port is not in the valid range"
                    )
                if node_port in self._store.allocated_ports and node_port not in previous_ports:
                    raise ClusterAPIError(
                        f"Invalid value: {node_port}: provided port is already allocated"
                    )
            requested.add(port["nodePort"])

        self._store.allocated_ports -= previous_ports
        self._store.allocated_ports |= requested

    def _free_port(self, exclude: set[int]) -> int:
        for candidate in range(DEFAULT_CONSTANTS.NODE_PORT_MIN, DEFAULT_CONSTANTS.NODE_PORT_MAX + 1):
            if candidate not in self._store.allocated_ports and candidate not in exclude:
                return candidate
        raise ClusterAPIError("No free node ports left in the node-port range")
