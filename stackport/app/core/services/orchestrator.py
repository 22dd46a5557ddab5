"""Deployment orchestrator: realizes logical deployments as cluster objects.

The orchestrator keeps no state of its own. The control plane is the system
of record for which objects exist and the record store (driven by the
caller) is the system of record for the logical deployment.

Protocols:
    create  - storage (volume, claim), then workload, then service; returns
              the NodePort the control plane allocated
    update  - workload, optional storage resize, service; each step is its
              own conflict-retry scope
    delete  - volume, claim, service, workload with foreground propagation

Each step is named (see ``ProtocolStep``). When a step fails, the error is
re-raised unchanged except for two attributes: ``step`` (the failing step)
and ``completed_steps`` (steps that already changed the cluster). Completed
steps are never rolled back here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from stackport.app.core.errors import ClusterAPIError, NotFoundError, StackportError
from stackport.app.core.services.locks import KeyedLock
from stackport.app.core.services.retry import ConflictRetry
from stackport.app.core.services.steps import ProtocolStep
from stackport.app.entities.deployment.entity import Deployment
from stackport.infra.constants import DEFAULT_CONSTANTS
from stackport.infra.k8s.builder import (
    ClusterResourceBuilder,
    env_list,
    storage_quantity,
)
from stackport.infra.k8s.controller import ClusterController, Manifest, ResourceKind
from stackport.infra.k8s.naming import ResourceNames

Mutation = Callable[[Manifest], None]


# =============================================================================
# Object mutations applied during read-modify-write
# =============================================================================


def set_workload_state(replicas: int, env_vars: dict[str, str]) -> Mutation:
    """Set the replica count and, if ``env_vars`` is non-empty, replace the env."""

    def mutate(obj: Manifest) -> None:
        obj["spec"]["replicas"] = replicas
        if env_vars:
            obj["spec"]["template"]["spec"]["containers"][0]["env"] = env_list(env_vars)

    return mutate


def set_volume_capacity(size_gib: int) -> Mutation:
    def mutate(obj: Manifest) -> None:
        obj["spec"]["capacity"] = {"storage": storage_quantity(size_gib)}

    return mutate


def set_claim_request(size_gib: int) -> Mutation:
    def mutate(obj: Manifest) -> None:
        obj["spec"].setdefault("resources", {})["requests"] = {
            "storage": storage_quantity(size_gib)
        }

    return mutate


def set_node_port(port: int) -> Mutation:
    def mutate(obj: Manifest) -> None:
        obj["spec"]["ports"][0]["nodePort"] = port

    return mutate


def node_port_of(service: Manifest) -> int:
    """Read the NodePort the control plane assigned to a service."""
    ports = service.get("spec", {}).get("ports") or []
    node_port = ports[0].get("nodePort") if ports else None
    if not node_port:
        raise ClusterAPIError("Service was created without a node port")
    return int(node_port)


# =============================================================================
# Protocol bookkeeping
# =============================================================================


class ProtocolRun:
    """Executes the steps of one protocol and tracks which ones completed."""

    def __init__(self, protocol: str, base_name: str) -> None:
        self.protocol = protocol
        self.base_name = base_name
        self.completed: list[ProtocolStep] = []
        self.skipped: list[ProtocolStep] = []

    async def step[T](
        self, step: ProtocolStep, action: Callable[..., Awaitable[T]], *args: Any
    ) -> T:
        logger.debug(f"{self.protocol} {self.base_name}: {step.value}")
        try:
            result = await action(*args)
        except StackportError as e:
            e.step = step
            e.completed_steps = tuple(self.completed)
            logger.error(
                f"{self.protocol} {self.base_name} failed at {step.value} "
                f"after {[s.value for s in self.completed]}: {e.message}"
            )
            raise
        self.completed.append(step)
        return result

    def skip(self, step: ProtocolStep, reason: str) -> None:
        logger.debug(f"{self.protocol} {self.base_name}: skipping {step.value} ({reason})")
        self.skipped.append(step)


# =============================================================================
# Orchestrator
# =============================================================================


class DeploymentOrchestrator:
    """Creates, updates and deletes the cluster objects of logical deployments.

    Example:
        ```python
        orchestrator = DeploymentOrchestrator(controller, ClusterResourceBuilder())
        port = await orchestrator.create(deployment)
        await orchestrator.update(deployment, paused)
        await orchestrator.delete(deployment.id, deployment.owner_id)
        ```
    """

    def __init__(
        self,
        controller: ClusterController,
        builder: ClusterResourceBuilder,
        *,
        retry: ConflictRetry | None = None,
        call_timeout: float = DEFAULT_CONSTANTS.DEFAULT_CALL_TIMEOUT_SECONDS,
        locks: KeyedLock | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            controller: Control-plane backend
            builder: Manifest builder (carries the target namespace)
            retry: Conflict-retry policy for update steps
            call_timeout: Deadline in seconds for each control-plane call
            locks: Per-deployment critical sections, shared if several
                orchestrators serve the same deployments
        """
        self._controller = controller
        self._builder = builder
        self._retry = retry or ConflictRetry()
        self._call_timeout = call_timeout
        self._locks = locks or KeyedLock()

    @property
    def namespace(self) -> str:
        return self._builder.namespace

    # =========================================================================
    # Create
    # =========================================================================

    async def create(self, deployment: Deployment) -> int:
        """Create every cluster object for ``deployment``.

        Returns:
            The NodePort allocated to the deployment's service
        """
        async with self._locks.hold((deployment.id, deployment.owner_id)):
            graph = self._builder.build(deployment)
            run = ProtocolRun("create", graph.names.base)
            logger.info(f"Creating cluster resources for {graph.names.base}")

            if graph.has_storage:
                await run.step(ProtocolStep.CREATE_VOLUME, self._create, ResourceKind.VOLUME, graph.volume)  # type: ignore[arg-type]
                await run.step(ProtocolStep.CREATE_CLAIM, self._create, ResourceKind.CLAIM, graph.claim)  # type: ignore[arg-type]

            await run.step(ProtocolStep.CREATE_WORKLOAD, self._create, ResourceKind.WORKLOAD, graph.workload)
            service = await run.step(
                ProtocolStep.CREATE_SERVICE, self._create, ResourceKind.SERVICE, graph.service
            )

            try:
                port = node_port_of(service)
            except ClusterAPIError as e:
                e.step = ProtocolStep.CREATE_SERVICE
                e.completed_steps = tuple(run.completed)
                raise

            logger.info(f"Created {graph.names.base} on node port {port}")
            return port

    # =========================================================================
    # Update
    # =========================================================================

    async def update(self, old: Deployment, new: Deployment) -> None:
        """Bring the cluster objects of ``old`` in line with ``new``.

        The objects are located by ``old``'s id and owner. Environment
        variables are always taken from ``new``.
        """
        async with self._locks.hold((old.id, old.owner_id)):
            names = ResourceNames.for_deployment(old.id, old.owner_id)
            run = ProtocolRun("update", names.base)
            ns = self.namespace
            logger.info(
                f"Updating {names.base}: replicas={new.desired_replicas} "
                f"volume={old.volume_size_gib}->{new.volume_size_gib} port={new.assigned_port}"
            )

            await run.step(
                ProtocolStep.UPDATE_WORKLOAD,
                self._read_modify_write,
                ProtocolStep.UPDATE_WORKLOAD,
                ResourceKind.WORKLOAD,
                names.workload,
                ns,
                set_workload_state(new.desired_replicas, new.env_vars),
            )

            if old.has_volume and new.has_volume and old.volume_size_gib != new.volume_size_gib:
                await run.step(
                    ProtocolStep.RESIZE_VOLUME,
                    self._read_modify_write,
                    ProtocolStep.RESIZE_VOLUME,
                    ResourceKind.VOLUME,
                    names.volume,
                    None,
                    set_volume_capacity(new.volume_size_gib),
                )
                await run.step(
                    ProtocolStep.RESIZE_CLAIM,
                    self._read_modify_write,
                    ProtocolStep.RESIZE_CLAIM,
                    ResourceKind.CLAIM,
                    names.claim,
                    ns,
                    set_claim_request(new.volume_size_gib),
                )

            if new.assigned_port:
                await run.step(
                    ProtocolStep.UPDATE_SERVICE,
                    self._read_modify_write,
                    ProtocolStep.UPDATE_SERVICE,
                    ResourceKind.SERVICE,
                    names.service,
                    ns,
                    set_node_port(new.assigned_port),
                )
            else:
                run.skip(ProtocolStep.UPDATE_SERVICE, "no port requested")

            logger.info(f"Updated {names.base} ({', '.join(s.value for s in run.completed)})")

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete(self, deployment_id: int, owner_id: int, *, missing_ok: bool = False) -> None:
        """Delete every cluster object of a deployment.

        Storage objects that do not exist are skipped, since deployments may
        have been created without storage. A missing service or workload is
        reported as ``NotFoundError`` unless ``missing_ok`` is set, which lets
        callers clear whatever a failed create left behind.
        """
        async with self._locks.hold((deployment_id, owner_id)):
            names = ResourceNames.for_deployment(deployment_id, owner_id)
            run = ProtocolRun("delete", names.base)
            ns = self.namespace
            logger.info(f"Deleting cluster resources for {names.base}")

            plan = (
                (ProtocolStep.DELETE_VOLUME, ResourceKind.VOLUME, names.volume, None),
                (ProtocolStep.DELETE_CLAIM, ResourceKind.CLAIM, names.claim, ns),
                (ProtocolStep.DELETE_SERVICE, ResourceKind.SERVICE, names.service, ns),
                (ProtocolStep.DELETE_WORKLOAD, ResourceKind.WORKLOAD, names.workload, ns),
            )
            for step, kind, name, namespace in plan:
                optional = missing_ok or kind in (ResourceKind.VOLUME, ResourceKind.CLAIM)
                try:
                    await run.step(step, self._delete, kind, name, namespace)
                except NotFoundError:
                    if not optional:
                        raise
                    run.skip(step, "not present")

            logger.info(f"Deleted cluster resources for {names.base}")

    # =========================================================================
    # Control-plane calls
    # =========================================================================

    async def _call[T](self, awaitable: Awaitable[T]) -> T:
        """Await one control-plane call under the per-call deadline."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._call_timeout)
        except TimeoutError as e:
            raise ClusterAPIError(
                f"Control-plane call timed out after {self._call_timeout}s"
            ) from e

    async def _create(self, kind: ResourceKind, manifest: Manifest) -> Manifest:
        return await self._call(self._controller.create(kind, manifest))

    async def _delete(self, kind: ResourceKind, name: str, namespace: str | None) -> None:
        await self._call(
            self._controller.delete(
                kind,
                name,
                namespace,
                propagation_policy=DEFAULT_CONSTANTS.DELETE_PROPAGATION,
            )
        )

    async def _read_modify_write(
        self,
        step: ProtocolStep,
        kind: ResourceKind,
        name: str,
        namespace: str | None,
        mutate: Mutation,
    ) -> Manifest:
        """Fetch, mutate and write back one object inside its own retry scope."""

        async def attempt() -> Manifest:
            obj = await self._call(self._controller.get(kind, name, namespace))
            mutate(obj)
            return await self._call(self._controller.replace(kind, obj))

        scope = self._retry.scope(f"{step.value} {name}")
        result = await scope.run(attempt)
        if scope.retried:
            logger.info(f"{step.value} {name} converged after {scope.attempts} attempts")
        return result
