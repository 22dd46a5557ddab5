"""Caller flow tying the validator, the record store and the orchestrator together.

The record store holds the logical deployment; the orchestrator holds the
cluster objects. This service keeps the two in step:

- create: validate, insert a provisional record, create cluster objects,
  store the allocated port. A failed create deletes the cluster objects it
  had already made and removes the provisional record.
- update: load, validate the merged candidate, update the cluster, then
  persist. A failed cluster update leaves the record untouched.
- delete: load, delete the cluster objects, then the record. A failed
  cluster delete leaves the record in place.

When a protocol fails after it already changed the cluster, or when the
record cannot be rolled back, ``InconsistentStateError`` is raised with the
failing and completed steps so the pair can be reconciled.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from stackport.app.core.catalog import CatalogEntry
from stackport.app.core.errors import InconsistentStateError, StackportError
from stackport.app.entities.deployment.entity import Deployment

if TYPE_CHECKING:
    from stackport.app.core.services.orchestrator import DeploymentOrchestrator
    from stackport.app.core.validation import DeploymentValidator
    from stackport.app.entities.deployment.repository import DeploymentRepository


class DeploymentService:
    """Owner-scoped operations on logical deployments.

    Example:
        ```python
        service = DeploymentService(repository, orchestrator, validator)
        created = await service.create_deployment(7, "redis", 1, 1, {})
        await service.update_deployment(created.id, 7, 1, 1, {}, False, 0)
        await service.delete_deployment(created.id, 7)
        ```
    """

    def __init__(
        self,
        repository: DeploymentRepository,
        orchestrator: DeploymentOrchestrator,
        validator: DeploymentValidator,
    ) -> None:
        self._repository = repository
        self._orchestrator = orchestrator
        self._validator = validator

    # =========================================================================
    # Queries
    # =========================================================================

    def list_catalog(self) -> list[tuple[str, CatalogEntry]]:
        return self._validator.catalog.enumerate()

    def list_deployments(self, owner_id: int) -> list[Deployment]:
        return self._repository.list_by_owner(owner_id)

    def get_deployment(self, deployment_id: int, owner_id: int) -> Deployment:
        return self._repository.get_by_owner(deployment_id, owner_id)

    # =========================================================================
    # Create
    # =========================================================================

    async def create_deployment(
        self,
        owner_id: int,
        image: str,
        volume: int,
        replicas: int,
        env_vars: dict[str, str],
    ) -> Deployment:
        """Validate, record and realize a new deployment.

        Raises:
            ValidationError: The request violates catalog or bounds rules
            InconsistentStateError: Cluster objects may have been left behind
            StackportError: Any other failure, after the record was rolled back
        """
        candidate = Deployment(
            owner_id=owner_id,
            image=image,
            volume_size_gib=volume,
            replicas=replicas,
            env_vars=env_vars,
            running=True,
            assigned_port=0,
        )
        self._validator.ensure_valid(candidate)

        record = await asyncio.to_thread(self._repository.insert, candidate)
        logger.info(f"Recorded deployment {record.id} for owner {owner_id} ({image})")

        try:
            port = await self._orchestrator.create(record)
        except StackportError as e:
            cleanup_error = None
            if e.completed_steps:
                cleanup_error = await self._discard_partial_create(record, e)
            await self._rollback_insert(record, e)
            if e.completed_steps:
                details = e.message
                if cleanup_error is not None:
                    details = f"{e.message}; cleanup failed: {cleanup_error.message}"
                raise InconsistentStateError(
                    f"Deployment {record.id} was only partially created",
                    failed_step=e.step,
                    completed_steps=e.completed_steps,
                    details=details,
                ) from e
            raise

        record.assigned_port = port
        return await asyncio.to_thread(self._repository.update_by_owner, record.id, owner_id, record)

    async def _discard_partial_create(
        self, record: Deployment, cause: StackportError
    ) -> StackportError | None:
        """Delete the objects a failed create left behind; return the cleanup error, if any."""
        logger.warning(
            f"Create of deployment {record.id} stopped at "
            f"{cause.step.value if cause.step else 'unknown step'}; deleting created objects"
        )
        try:
            await self._orchestrator.delete(record.id, record.owner_id, missing_ok=True)
        except StackportError as cleanup_error:
            logger.error(
                f"Cleanup of deployment {record.id} failed at "
                f"{cleanup_error.step.value if cleanup_error.step else 'unknown step'}: "
                f"{cleanup_error.message}"
            )
            return cleanup_error
        return None

    async def _rollback_insert(self, record: Deployment, cause: StackportError) -> None:
        logger.warning(
            f"Cluster create failed for deployment {record.id}; removing provisional record"
        )
        try:
            await asyncio.to_thread(self._repository.delete_by_owner, record.id, record.owner_id)
        except StackportError as rollback_error:
            raise InconsistentStateError(
                f"Deployment {record.id} record could not be rolled back",
                failed_step=cause.step,
                completed_steps=cause.completed_steps,
                details=rollback_error.message,
            ) from cause

    # =========================================================================
    # Update
    # =========================================================================

    async def update_deployment(
        self,
        deployment_id: int,
        owner_id: int,
        replicas: int,
        volume: int,
        env_vars: dict[str, str],
        running: bool,
        port: int = 0,
    ) -> Deployment:
        """Apply a full update to an existing deployment.

        ``port`` 0 keeps the currently assigned port.

        Raises:
            NotFoundError: No such deployment for this owner
            ValidationError: The merged deployment is invalid
            InconsistentStateError: Some cluster objects were already updated
        """
        current = await asyncio.to_thread(self._repository.get_by_owner, deployment_id, owner_id)
        candidate = current.model_copy(
            update={
                "replicas": replicas,
                "volume_size_gib": volume,
                "env_vars": dict(env_vars),
                "running": running,
                "assigned_port": port or current.assigned_port,
            }
        )
        self._validator.ensure_valid(candidate, for_update=True)

        try:
            await self._orchestrator.update(current, candidate)
        except StackportError as e:
            if e.completed_steps:
                raise InconsistentStateError(
                    f"Deployment {deployment_id} was only partially updated",
                    failed_step=e.step,
                    completed_steps=e.completed_steps,
                    details=e.message,
                ) from e
            raise

        return await asyncio.to_thread(
            self._repository.update_by_owner, deployment_id, owner_id, candidate
        )

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete_deployment(self, deployment_id: int, owner_id: int) -> None:
        """Remove the cluster objects and then the record of a deployment.

        Raises:
            NotFoundError: No such deployment for this owner
            InconsistentStateError: Some cluster objects were already deleted
        """
        record = await asyncio.to_thread(self._repository.get_by_owner, deployment_id, owner_id)

        try:
            await self._orchestrator.delete(record.id, record.owner_id)
        except StackportError as e:
            if e.completed_steps:
                raise InconsistentStateError(
                    f"Deployment {deployment_id} was only partially deleted",
                    failed_step=e.step,
                    completed_steps=e.completed_steps,
                    details=e.message,
                ) from e
            raise

        await asyncio.to_thread(self._repository.delete_by_owner, deployment_id, owner_id)
        logger.info(f"Deleted deployment {deployment_id} of owner {owner_id}")
