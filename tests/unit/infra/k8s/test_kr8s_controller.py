"""Tests for the kr8s-backed controller, with the kr8s API mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import kr8s
import pytest

from stackport.app.core.errors import ClusterAPIError, ConflictError, NotFoundError
from stackport.infra.k8s import kr8s_controller
from stackport.infra.k8s.controller import ObjectRef, ResourceKind
from stackport.infra.k8s.kr8s_controller import Kr8sClusterController, translate_error

REF = ObjectRef(kind=ResourceKind.WORKLOAD, name="deployment-1-user-7-deployment", namespace="default")


class FakeServerError(Exception):
    """Mimics the attributes kr8s puts on API server errors."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        super().__init__(f"HTTP {status_code}")
        self.response = MagicMock(status_code=status_code)
        self.status = {"reason": reason}


class TestTranslateError:
    def test_kr8s_not_found(self):
        error = translate_error(kr8s.NotFoundError("gone"), REF, "read")
        assert isinstance(error, NotFoundError)

    def test_http_404(self):
        assert isinstance(translate_error(FakeServerError(404), REF, "read"), NotFoundError)

    def test_http_409_conflict(self):
        error = translate_error(FakeServerError(409, "Conflict"), REF, "update")
        assert isinstance(error, ConflictError)

    def test_http_409_already_exists_is_not_retryable(self):
        error = translate_error(FakeServerError(409, "AlreadyExists"), REF, "create")
        assert type(error) is ClusterAPIError

    def test_anything_else(self):
        error = translate_error(RuntimeError("connection refused"), REF, "create")
        assert type(error) is ClusterAPIError
        assert error.details == "connection refused"


@pytest.fixture
def api() -> MagicMock:
    api = MagicMock()
    api.version = AsyncMock(return_value={"gitVersion": "v1.30.0"})
    api.auth.active_context = "kind-dev"
    return api


@pytest.fixture
def kr8s_object() -> MagicMock:
    obj = MagicMock()
    obj.create = AsyncMock()
    obj.patch = AsyncMock()
    obj.delete = AsyncMock()
    obj.raw = {"metadata": {"name": "x", "resourceVersion": "5"}, "spec": {}}
    return obj


@pytest.fixture
def object_class(kr8s_object: MagicMock) -> MagicMock:
    cls = MagicMock(return_value=kr8s_object)
    cls.get = AsyncMock(return_value=kr8s_object)
    return cls


@pytest.fixture
def controller(api: MagicMock, object_class: MagicMock):
    controller = Kr8sClusterController(kubeconfig="/tmp/kubeconfig", context="kind-dev")
    classes = {kind: object_class for kind in ResourceKind}
    with (
        patch.object(Kr8sClusterController, "_get_api", AsyncMock(return_value=api)),
        patch.dict(kr8s_controller._OBJECT_CLASSES, classes),
    ):
        yield controller


class TestKr8sClusterController:
    @pytest.mark.asyncio
    async def test_create_returns_stored_object(self, controller, kr8s_object, builder, make_deployment):
        manifest = builder.build(make_deployment()).workload

        stored = await controller.create(ResourceKind.WORKLOAD, manifest)

        kr8s_object.create.assert_awaited_once()
        assert stored["metadata"]["resourceVersion"] == "5"

    @pytest.mark.asyncio
    async def test_create_translates_errors(self, controller, kr8s_object, builder, make_deployment):
        kr8s_object.create.side_effect = FakeServerError(409, "AlreadyExists")

        with pytest.raises(ClusterAPIError):
            await controller.create(ResourceKind.WORKLOAD, builder.build(make_deployment()).workload)

    @pytest.mark.asyncio
    async def test_get_namespaced(self, controller, object_class):
        await controller.get(ResourceKind.CLAIM, "claim", "default")

        assert object_class.get.call_args.kwargs["namespace"] == "default"

    @pytest.mark.asyncio
    async def test_get_cluster_scoped(self, controller, object_class):
        await controller.get(ResourceKind.VOLUME, "pv", "default")

        assert "namespace" not in object_class.get.call_args.kwargs

    @pytest.mark.asyncio
    async def test_get_missing(self, controller, object_class):
        object_class.get.side_effect = kr8s.NotFoundError("gone")

        with pytest.raises(NotFoundError):
            await controller.get(ResourceKind.SERVICE, "svc", "default")

    @pytest.mark.asyncio
    async def test_replace_pins_resource_version(self, controller, kr8s_object):
        manifest = {
            "metadata": {"name": "x", "namespace": "default", "resourceVersion": "4"},
            "spec": {"replicas": 0},
        }

        await controller.replace(ResourceKind.WORKLOAD, manifest)

        kr8s_object.patch.assert_awaited_once_with(
            {"metadata": {"resourceVersion": "4"}, "spec": {"replicas": 0}}
        )

    @pytest.mark.asyncio
    async def test_replace_requires_resource_version(self, controller, kr8s_object):
        manifest = {"metadata": {"name": "x"}, "spec": {}}

        with pytest.raises(ClusterAPIError):
            await controller.replace(ResourceKind.WORKLOAD, manifest)
        kr8s_object.patch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replace_conflict(self, controller, kr8s_object):
        kr8s_object.patch.side_effect = FakeServerError(409, "Conflict")
        manifest = {"metadata": {"name": "x", "resourceVersion": "4"}, "spec": {}}

        with pytest.raises(ConflictError):
            await controller.replace(ResourceKind.WORKLOAD, manifest)

    @pytest.mark.asyncio
    async def test_delete_passes_propagation_policy(self, controller, kr8s_object):
        await controller.delete(
            ResourceKind.WORKLOAD, "x", "default", propagation_policy="Foreground"
        )

        kr8s_object.delete.assert_awaited_once_with(propagation_policy="Foreground")

    @pytest.mark.asyncio
    async def test_ping(self, controller, api):
        assert await controller.ping() is True

        api.version.side_effect = RuntimeError("unreachable")
        assert await controller.ping() is False

    @pytest.mark.asyncio
    async def test_current_context(self, controller):
        assert await controller.get_current_context() == "kind-dev"
