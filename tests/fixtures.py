"""Shared pytest fixtures.

Everything runs in-process: the control plane is an InMemoryClusterController
and the record store is an in-memory SQLite database.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest

from stackport.app.api.http.app_data import (
    ApplicationDependencies,
    build_application_dependencies,
)
from stackport.app.core.catalog import DEFAULT_CATALOG, ImageCatalog
from stackport.app.core.services.database.db_manage import DbManageService
from stackport.app.core.services.deployment_service import DeploymentService
from stackport.app.core.services.orchestrator import DeploymentOrchestrator
from stackport.app.core.services.retry import ConflictRetry, RetryPolicy
from stackport.app.core.validation import DeploymentValidator
from stackport.app.entities.deployment.entity import Deployment
from stackport.app.entities.deployment.repository import DeploymentRepository
from stackport.app.runtime.config.config_data import (
    AppConfig,
    ClusterConfig,
    ConfigData,
    DatabaseConfig,
    ImageConfig,
)
from stackport.infra.k8s.builder import ClusterResourceBuilder
from stackport.infra.k8s.memory_controller import InMemoryClusterController

POSTGRES_ENV = {
    "POSTGRES_DB": "app",
    "POSTGRES_PASSWORD": "secret",
    "POSTGRES_USER": "app",
}


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def catalog() -> ImageCatalog:
    return DEFAULT_CATALOG


@pytest.fixture
def validator(catalog: ImageCatalog) -> DeploymentValidator:
    return DeploymentValidator(catalog)


@pytest.fixture
def controller() -> InMemoryClusterController:
    return InMemoryClusterController()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry(sleep: RecordingSleep) -> ConflictRetry:
    """Default policy with no real sleeping and no jitter."""
    return ConflictRetry(RetryPolicy(), sleep=sleep, rand=lambda: 0.0)


@pytest.fixture
def builder() -> ClusterResourceBuilder:
    return ClusterResourceBuilder()


@pytest.fixture
def orchestrator(
    controller: InMemoryClusterController,
    builder: ClusterResourceBuilder,
    retry: ConflictRetry,
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(controller, builder, retry=retry, call_timeout=1.0)


@pytest.fixture
def db_service() -> Iterator[DbManageService]:
    service = DbManageService(DatabaseConfig(url="sqlite://"))
    service.create_all()
    yield service
    service.dispose()


@pytest.fixture
def repository(db_service: DbManageService) -> DeploymentRepository:
    return DeploymentRepository(db_service.engine)


@pytest.fixture
def deployment_service(
    repository: DeploymentRepository,
    orchestrator: DeploymentOrchestrator,
    validator: DeploymentValidator,
) -> DeploymentService:
    return DeploymentService(repository, orchestrator, validator)


@pytest.fixture
def test_config() -> ConfigData:
    return ConfigData(
        app=AppConfig(environment="test"),
        database=DatabaseConfig(url="sqlite://"),
        cluster=ClusterConfig(backend="memory"),
        catalog={
            "images": {
                name: ImageConfig(
                    supports_volume=entry.supports_volume,
                    required_env_vars=sorted(entry.required_env_vars),
                )
                for name, entry in DEFAULT_CATALOG.enumerate()
            }
        },
    )


@pytest.fixture
def app_dependencies(
    test_config: ConfigData,
    db_service: DbManageService,
    controller: InMemoryClusterController,
    retry: ConflictRetry,
) -> ApplicationDependencies:
    return build_application_dependencies(
        test_config,
        database_service=db_service,
        cluster_controller=controller,
        retry=retry,
    )


@pytest.fixture
def make_deployment() -> Callable[..., Deployment]:
    """Factory for deployments with sensible defaults (redis, 1 GiB, 1 replica)."""

    def _make(**overrides: object) -> Deployment:
        fields: dict[str, object] = {
            "id": 1,
            "owner_id": 7,
            "image": "redis",
            "volume_size_gib": 1,
            "replicas": 1,
            "env_vars": {},
            "running": True,
            "assigned_port": 0,
        }
        fields.update(overrides)
        return Deployment(**fields)  # type: ignore[arg-type]

    return _make
