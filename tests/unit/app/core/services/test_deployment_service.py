"""Tests for the DeploymentService caller flow."""

import threading
from unittest.mock import MagicMock

import pytest

from stackport.app.core.errors import (
    ClusterAPIError,
    InconsistentStateError,
    NotFoundError,
    ValidationError,
)
from stackport.app.core.services.deployment_service import DeploymentService
from stackport.app.core.services.steps import ProtocolStep
from stackport.app.entities.deployment.entity import Deployment
from stackport.infra.k8s.controller import ResourceKind
from stackport.infra.k8s.naming import ResourceNames
from tests.fixtures import POSTGRES_ENV


class TestCreateDeployment:
    @pytest.mark.asyncio
    async def test_create_records_port(self, deployment_service, repository, controller):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})

        assert created.id == 1
        assert created.assigned_port == 30000
        assert created.running is True
        assert repository.get_by_owner(created.id, 7).assigned_port == 30000
        names = ResourceNames.for_deployment(created.id, 7)
        assert controller.exists(ResourceKind.WORKLOAD, names.workload)

    @pytest.mark.asyncio
    async def test_invalid_request_touches_nothing(self, deployment_service, repository, controller):
        with pytest.raises(ValidationError) as excinfo:
            await deployment_service.create_deployment(7, "postgres", 1, 9, {})

        assert set(excinfo.value.errors) == {"replicas", "env_vars"}
        assert repository.list_by_owner(7) == []
        assert controller.calls == []

    @pytest.mark.asyncio
    async def test_failure_before_any_object_rolls_back_record(
        self, deployment_service, repository, controller
    ):
        controller.inject_fault("create", ClusterAPIError("forbidden"))

        with pytest.raises(ClusterAPIError):
            await deployment_service.create_deployment(7, "redis", 1, 1, {})

        assert repository.list_by_owner(7) == []

    @pytest.mark.asyncio
    async def test_partial_create_is_reported(self, deployment_service, repository, controller):
        controller.inject_fault("create", ClusterAPIError("quota"), kind=ResourceKind.SERVICE)

        with pytest.raises(InconsistentStateError) as excinfo:
            await deployment_service.create_deployment(7, "redis", 1, 1, {})

        assert excinfo.value.failed_step is ProtocolStep.CREATE_SERVICE
        assert excinfo.value.completed_steps == (
            ProtocolStep.CREATE_VOLUME,
            ProtocolStep.CREATE_CLAIM,
            ProtocolStep.CREATE_WORKLOAD,
        )
        assert repository.list_by_owner(7) == []
        assert controller.objects() == []

    @pytest.mark.asyncio
    async def test_create_after_partial_failure_succeeds(self, deployment_service, repository, controller):
        first = await deployment_service.create_deployment(7, "redis", 1, 1, {})
        controller.inject_fault("create", ClusterAPIError("quota"), kind=ResourceKind.SERVICE)
        with pytest.raises(InconsistentStateError):
            await deployment_service.create_deployment(7, "redis", 1, 1, {})

        second = await deployment_service.create_deployment(7, "redis", 1, 1, {})

        assert second.id == 3
        assert [r.id for r in repository.list_by_owner(7)] == [first.id, second.id]
        expected = set()
        for deployment_id in (first.id, second.id):
            names = ResourceNames.for_deployment(deployment_id, 7)
            expected |= {names.volume, names.claim, names.workload, names.service}
        assert {obj["metadata"]["name"] for obj in controller.objects()} == expected

    @pytest.mark.asyncio
    async def test_failed_cleanup_is_reported(self, deployment_service, repository, controller):
        controller.inject_fault("create", ClusterAPIError("quota"), kind=ResourceKind.SERVICE)
        controller.inject_fault("delete", ClusterAPIError("forbidden"), kind=ResourceKind.WORKLOAD)

        with pytest.raises(InconsistentStateError) as excinfo:
            await deployment_service.create_deployment(7, "redis", 1, 1, {})

        assert excinfo.value.failed_step is ProtocolStep.CREATE_SERVICE
        assert "cleanup failed: forbidden" in excinfo.value.details
        assert repository.list_by_owner(7) == []
        names = ResourceNames.for_deployment(1, 7)
        assert controller.exists(ResourceKind.WORKLOAD, names.workload)
        assert not controller.exists(ResourceKind.VOLUME, names.volume)

    @pytest.mark.asyncio
    async def test_failed_rollback_is_reported(self, orchestrator, validator, controller):
        repository = MagicMock()
        repository.insert.return_value = Deployment(id=5, owner_id=7, image="redis", volume_size_gib=1)
        repository.delete_by_owner.side_effect = NotFoundError("gone")
        controller.inject_fault("create", ClusterAPIError("forbidden"))
        service = DeploymentService(repository, orchestrator, validator)

        with pytest.raises(InconsistentStateError) as excinfo:
            await service.create_deployment(7, "redis", 1, 1, {})

        assert excinfo.value.failed_step is ProtocolStep.CREATE_VOLUME
        assert "rolled back" in excinfo.value.message


class TestUpdateDeployment:
    @pytest.mark.asyncio
    async def test_pause(self, deployment_service, controller):
        created = await deployment_service.create_deployment(7, "redis", 1, 2, {})

        updated = await deployment_service.update_deployment(created.id, 7, 2, 1, {}, False)

        assert updated.running is False
        assert updated.assigned_port == created.assigned_port
        names = ResourceNames.for_deployment(created.id, 7)
        workload = await controller.get(ResourceKind.WORKLOAD, names.workload)
        assert workload["spec"]["replicas"] == 0

    @pytest.mark.asyncio
    async def test_update_refreshes_last_updated(self, deployment_service):
        created = await deployment_service.create_deployment(7, "postgres", 1, 1, POSTGRES_ENV)

        updated = await deployment_service.update_deployment(
            created.id, 7, 3, 2, POSTGRES_ENV, True
        )

        assert updated.replicas == 3
        assert updated.volume_size_gib == 2
        assert updated.last_updated_at >= created.last_updated_at
        assert updated.created_at == created.created_at

    @pytest.mark.asyncio
    async def test_update_with_new_port(self, deployment_service):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})

        updated = await deployment_service.update_deployment(created.id, 7, 1, 1, {}, True, 31500)

        assert updated.assigned_port == 31500

    @pytest.mark.asyncio
    async def test_invalid_port(self, deployment_service):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})

        with pytest.raises(ValidationError) as excinfo:
            await deployment_service.update_deployment(created.id, 7, 1, 1, {}, True, 80)

        assert excinfo.value.errors == {"port": "cannot have a value under 30000"}

    @pytest.mark.asyncio
    async def test_other_owner_cannot_update(self, deployment_service):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})

        with pytest.raises(NotFoundError):
            await deployment_service.update_deployment(created.id, 8, 1, 1, {}, True)

    @pytest.mark.asyncio
    async def test_failed_cluster_update_keeps_record(self, deployment_service, controller, repository):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})
        controller.inject_fault("get", ClusterAPIError("forbidden"), kind=ResourceKind.WORKLOAD)

        with pytest.raises(ClusterAPIError):
            await deployment_service.update_deployment(created.id, 7, 4, 1, {}, True)

        assert repository.get_by_owner(created.id, 7).replicas == 1

    @pytest.mark.asyncio
    async def test_partial_update_is_reported(self, deployment_service, controller):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})
        controller.inject_fault("get", ClusterAPIError("forbidden"), kind=ResourceKind.CLAIM)

        with pytest.raises(InconsistentStateError) as excinfo:
            await deployment_service.update_deployment(created.id, 7, 1, 3, {}, True)

        assert excinfo.value.failed_step is ProtocolStep.RESIZE_CLAIM
        assert excinfo.value.completed_steps == (
            ProtocolStep.UPDATE_WORKLOAD,
            ProtocolStep.RESIZE_VOLUME,
        )


class TestDeleteDeployment:
    @pytest.mark.asyncio
    async def test_delete(self, deployment_service, controller, repository):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})

        await deployment_service.delete_deployment(created.id, 7)

        assert controller.objects() == []
        assert repository.list_by_owner(7) == []

    @pytest.mark.asyncio
    async def test_delete_unknown(self, deployment_service, controller):
        with pytest.raises(NotFoundError):
            await deployment_service.delete_deployment(42, 7)
        assert controller.calls == []

    @pytest.mark.asyncio
    async def test_cluster_failure_keeps_record(self, deployment_service, controller, repository):
        created = await deployment_service.create_deployment(7, "redis", 1, 1, {})
        controller.inject_fault("delete", ClusterAPIError("forbidden"), kind=ResourceKind.VOLUME)

        with pytest.raises(ClusterAPIError):
            await deployment_service.delete_deployment(created.id, 7)

        assert repository.get_by_owner(created.id, 7).id == created.id


def test_queries(deployment_service):
    names = [name for name, _ in deployment_service.list_catalog()]
    assert names == ["mongo", "mysql", "postgres", "redis"]
    assert deployment_service.list_deployments(7) == []


class TestRecordStoreCalls:
    @pytest.mark.asyncio
    async def test_record_store_runs_off_the_event_loop(self, deployment_service, repository, monkeypatch):
        loop_thread = threading.get_ident()
        threads: list[int] = []
        insert = repository.insert

        def recording_insert(deployment):
            threads.append(threading.get_ident())
            return insert(deployment)

        monkeypatch.setattr(repository, "insert", recording_insert)

        await deployment_service.create_deployment(7, "redis", 1, 1, {})

        assert threads
        assert loop_thread not in threads
