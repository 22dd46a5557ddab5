from __future__ import annotations

from dataclasses import dataclass

from stackport.app.core.catalog import ImageCatalog
from stackport.app.core.services.database.db_manage import DbManageService
from stackport.app.core.services.deployment_service import DeploymentService
from stackport.app.core.services.orchestrator import DeploymentOrchestrator
from stackport.app.core.services.retry import ConflictRetry
from stackport.app.core.validation import DeploymentValidator
from stackport.app.entities.deployment.repository import DeploymentRepository
from stackport.app.runtime.config.config_data import ConfigData
from stackport.infra.k8s.builder import ClusterResourceBuilder
from stackport.infra.k8s.controller import ClusterController
from stackport.infra.k8s.helpers import build_cluster_controller


@dataclass
class ApplicationDependencies:
    catalog: ImageCatalog
    database_service: DbManageService
    cluster_controller: ClusterController
    orchestrator: DeploymentOrchestrator
    deployment_service: DeploymentService


def build_application_dependencies(
    config: ConfigData,
    *,
    database_service: DbManageService | None = None,
    cluster_controller: ClusterController | None = None,
    retry: ConflictRetry | None = None,
) -> ApplicationDependencies:
    """Wire the services for one process from configuration.

    The optional arguments replace the configured database, control plane
    and retry policy (used by tests and by the CLI).
    """
    catalog = config.build_catalog()
    database_service = database_service or DbManageService(config.database)
    cluster_controller = cluster_controller or build_cluster_controller(config.cluster)

    orchestrator = DeploymentOrchestrator(
        cluster_controller,
        ClusterResourceBuilder(
            namespace=config.cluster.namespace,
            host_path_root=config.cluster.host_path_root,
        ),
        retry=retry or ConflictRetry(config.cluster.retry.to_policy()),
        call_timeout=config.cluster.call_timeout_seconds,
    )
    deployment_service = DeploymentService(
        DeploymentRepository(database_service.engine),
        orchestrator,
        DeploymentValidator(catalog),
    )

    return ApplicationDependencies(
        catalog=catalog,
        database_service=database_service,
        cluster_controller=cluster_controller,
        orchestrator=orchestrator,
        deployment_service=deployment_service,
    )
