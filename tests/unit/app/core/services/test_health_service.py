"""Unit tests for the HealthCheckService.

These tests verify the health check service logic with mocked dependencies.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from stackport.app.api.http.schemas.health import OverallStatus, ServiceStatus
from stackport.app.core.errors import ClusterAPIError
from stackport.app.core.services.health_service import HealthCheckService


@pytest.fixture
def mock_config() -> MagicMock:
    """Create a mock configuration."""
    config = MagicMock()
    config.app.environment = "development"
    config.cluster.backend = "kr8s"
    config.cluster.namespace = "default"
    return config


@pytest.fixture
def mock_app_deps() -> MagicMock:
    """Create mock application dependencies."""
    deps = MagicMock()

    deps.database_service.health_check.return_value = True
    deps.database_service.database_type = "postgresql"

    deps.cluster_controller.ping = AsyncMock(return_value=True)
    deps.cluster_controller.get_current_context = AsyncMock(return_value="kind-dev")

    return deps


@pytest.fixture
def health_service(mock_app_deps: MagicMock, mock_config: MagicMock) -> HealthCheckService:
    return HealthCheckService(mock_app_deps, mock_config)


class TestCheckAll:
    """Tests for the check_all method."""

    @pytest.mark.asyncio
    async def test_all_services_healthy(self, health_service: HealthCheckService) -> None:
        result = await health_service.check_all()

        assert result.status == OverallStatus.READY
        assert result.environment == "development"
        assert result.checks.database.status == ServiceStatus.HEALTHY
        assert result.checks.cluster.status == ServiceStatus.HEALTHY
        assert result.checks.cluster.context == "kind-dev"

    @pytest.mark.asyncio
    async def test_database_failure_makes_not_ready(
        self, mock_app_deps: MagicMock, mock_config: MagicMock
    ) -> None:
        mock_app_deps.database_service.health_check.return_value = False

        result = await HealthCheckService(mock_app_deps, mock_config).check_all()

        assert result.status == OverallStatus.NOT_READY
        assert result.checks.database.status == ServiceStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_unreachable_cluster_makes_not_ready(
        self, mock_app_deps: MagicMock, mock_config: MagicMock
    ) -> None:
        mock_app_deps.cluster_controller.ping = AsyncMock(return_value=False)

        result = await HealthCheckService(mock_app_deps, mock_config).check_all()

        assert result.status == OverallStatus.NOT_READY
        assert result.checks.cluster.status == ServiceStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_memory_backend_in_production_is_degraded(
        self, mock_app_deps: MagicMock, mock_config: MagicMock
    ) -> None:
        """A degraded control plane does not make the app unready."""
        mock_config.app.environment = "production"
        mock_config.cluster.backend = "memory"

        result = await HealthCheckService(mock_app_deps, mock_config).check_all()

        assert result.status == OverallStatus.READY
        assert result.checks.cluster.status == ServiceStatus.DEGRADED


class TestCheckDatabase:
    @pytest.mark.asyncio
    async def test_exception_is_reported(
        self, mock_app_deps: MagicMock, mock_config: MagicMock
    ) -> None:
        mock_app_deps.database_service.health_check.side_effect = OperationalError(
            "SELECT 1", {}, Exception("connection refused")
        )

        result = await HealthCheckService(mock_app_deps, mock_config).check_database()

        assert result.status == ServiceStatus.UNHEALTHY
        assert result.type == "postgresql"
        assert "connection refused" in (result.error or "")


class TestCheckCluster:
    @pytest.mark.asyncio
    async def test_controller_error_is_reported(
        self, mock_app_deps: MagicMock, mock_config: MagicMock
    ) -> None:
        mock_app_deps.cluster_controller.ping = AsyncMock(
            side_effect=ClusterAPIError("kubeconfig not found")
        )

        result = await HealthCheckService(mock_app_deps, mock_config).check_cluster()

        assert result.status == ServiceStatus.UNHEALTHY
        assert result.error == "kubeconfig not found"
        assert result.backend == "kr8s"


@pytest.mark.asyncio
async def test_real_in_memory_dependencies_are_ready(app_dependencies, test_config) -> None:
    result = await HealthCheckService(app_dependencies, test_config).check_all()

    assert result.status == OverallStatus.READY
    assert result.checks.database.type == "sqlite"
    assert result.checks.cluster.context == "in-memory"
