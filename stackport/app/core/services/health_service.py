"""Health check service for application dependencies.

Checks the record store and the Kubernetes control plane. Both are critical:
without either, no deployment request can be served.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from stackport.app.api.http.schemas.health import (
    AllServicesHealth,
    ClusterHealth,
    DatabaseHealth,
    OverallStatus,
    ReadinessResponse,
    ServiceStatus,
)
from stackport.app.core.errors import StackportError

if TYPE_CHECKING:
    from stackport.app.api.http.app_data import ApplicationDependencies
    from stackport.app.runtime.config.config_data import ConfigData


class HealthCheckService:
    """Service for performing health checks on application dependencies.

    Example:
        ```python
        health_service = HealthCheckService(app_deps, config)
        result = await health_service.check_all()
        if result.status == OverallStatus.READY:
            print("All systems go!")
        ```
    """

    def __init__(
        self,
        app_deps: ApplicationDependencies,
        config: ConfigData,
    ) -> None:
        self._app_deps = app_deps
        self._config = config

    # =========================================================================
    # Public API
    # =========================================================================

    async def check_all(self) -> ReadinessResponse:
        database = await self.check_database()
        cluster = await self.check_cluster()

        ready = all(
            check.status != ServiceStatus.UNHEALTHY for check in (database, cluster)
        )
        return ReadinessResponse(
            status=OverallStatus.READY if ready else OverallStatus.NOT_READY,
            environment=self._config.app.environment,
            checks=AllServicesHealth(database=database, cluster=cluster),
        )

    async def check_database(self) -> DatabaseHealth:
        db_service = self._app_deps.database_service
        try:
            healthy = db_service.health_check()
        except SQLAlchemyError as e:
            logger.warning(f"Database health check raised: {e}")
            return DatabaseHealth(
                status=ServiceStatus.UNHEALTHY,
                type=db_service.database_type,
                error=str(e),
            )
        return DatabaseHealth(
            status=ServiceStatus.HEALTHY if healthy else ServiceStatus.UNHEALTHY,
            type=db_service.database_type,
        )

    async def check_cluster(self) -> ClusterHealth:
        cluster = self._config.cluster
        controller = self._app_deps.cluster_controller
        try:
            reachable = await controller.ping()
            context = await controller.get_current_context()
        except StackportError as e:
            return ClusterHealth(
                status=ServiceStatus.UNHEALTHY,
                backend=cluster.backend,
                namespace=cluster.namespace,
                error=e.message,
            )

        if not reachable:
            return ClusterHealth(
                status=ServiceStatus.UNHEALTHY,
                backend=cluster.backend,
                namespace=cluster.namespace,
                context=context,
                note="Control plane did not answer",
            )

        if cluster.backend == "memory" and self._config.app.environment == "production":
            return ClusterHealth(
                status=ServiceStatus.DEGRADED,
                backend=cluster.backend,
                namespace=cluster.namespace,
                context=context,
                note="In-memory control plane; no real cluster resources are created",
            )

        return ClusterHealth(
            status=ServiceStatus.HEALTHY,
            backend=cluster.backend,
            namespace=cluster.namespace,
            context=context,
        )
