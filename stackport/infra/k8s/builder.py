"""Builds the cluster object graph for a validated logical deployment.

The builder only assembles plain manifest dictionaries; submitting them is
the orchestrator's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from stackport.app.entities.deployment.entity import Deployment
from stackport.infra.constants import DEFAULT_CONSTANTS
from stackport.infra.k8s.naming import ResourceNames

Manifest = dict[str, Any]


def storage_quantity(size_gib: int) -> str:
    """Render a size in binary gigabytes as a Kubernetes quantity (``"2Gi"``)."""
    return f"{size_gib}{DEFAULT_CONSTANTS.STORAGE_UNIT}"


def env_list(env_vars: dict[str, str]) -> list[dict[str, str]]:
    """Container env entries, sorted by name so manifests are deterministic."""
    return [{"name": name, "value": env_vars[name]} for name in sorted(env_vars)]


@dataclass(frozen=True)
class ResourceGraph:
    """Manifests realizing one logical deployment."""

    names: ResourceNames
    workload: Manifest
    service: Manifest
    volume: Manifest | None = None
    claim: Manifest | None = None

    @property
    def has_storage(self) -> bool:
        return self.volume is not None and self.claim is not None


class ClusterResourceBuilder:
    """Constructs manifests for the workload, service and optional storage."""

    def __init__(
        self,
        namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE,
        host_path_root: str = DEFAULT_CONSTANTS.DEFAULT_HOST_PATH_ROOT,
    ) -> None:
        self.namespace = namespace
        self.host_path_root = host_path_root

    def build(self, deployment: Deployment) -> ResourceGraph:
        names = ResourceNames.for_deployment(deployment.id, deployment.owner_id)
        workload = self.workload(deployment, names)

        volume = claim = None
        if deployment.has_volume:
            volume = self.volume(deployment.volume_size_gib, names)
            claim = self.claim(deployment.volume_size_gib, names)

        return ResourceGraph(
            names=names,
            workload=workload,
            service=self.service(names),
            volume=volume,
            claim=claim,
        )

    def workload(self, deployment: Deployment, names: ResourceNames) -> Manifest:
        labels = {DEFAULT_CONSTANTS.APP_LABEL: names.app_label}
        container: Manifest = {
            "name": names.container,
            "image": deployment.image,
            "env": env_list(deployment.env_vars),
        }
        pod_spec: Manifest = {"containers": [container]}

        if deployment.has_volume:
            container["volumeMounts"] = [
                {"name": names.mount, "mountPath": names.mount_path}
            ]
            pod_spec["volumes"] = [
                {
                    "name": names.mount,
                    "persistentVolumeClaim": {"claimName": names.claim},
                }
            ]

        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {
                "name": names.workload,
                "namespace": self.namespace,
                "labels": dict(labels),
            },
            "spec": {
                "replicas": deployment.desired_replicas,
                "selector": {"matchLabels": dict(labels)},
                "template": {
                    "metadata": {"labels": dict(labels)},
                    "spec": pod_spec,
                },
            },
        }

    def volume(self, size_gib: int, names: ResourceNames) -> Manifest:
        # PersistentVolumes are cluster-scoped, no namespace
        return {
            "apiVersion": "v1",
            "kind": "PersistentVolume",
            "metadata": {
                "name": names.volume,
                "labels": {"type": "local", DEFAULT_CONSTANTS.APP_LABEL: names.app_label},
            },
            "spec": {
                "storageClassName": names.storage_class,
                "capacity": {"storage": storage_quantity(size_gib)},
                "accessModes": [DEFAULT_CONSTANTS.ACCESS_MODE],
                "hostPath": {"path": names.host_path(self.host_path_root)},
            },
        }

    def claim(self, size_gib: int, names: ResourceNames) -> Manifest:
        return {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": {
                "name": names.claim,
                "namespace": self.namespace,
                "labels": {DEFAULT_CONSTANTS.APP_LABEL: names.app_label},
            },
            "spec": {
                "storageClassName": names.storage_class,
                "accessModes": [DEFAULT_CONSTANTS.ACCESS_MODE],
                "resources": {"requests": {"storage": storage_quantity(size_gib)}},
            },
        }

    def service(self, names: ResourceNames) -> Manifest:
        # nodePort is left out so the control plane allocates it
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": names.service,
                "namespace": self.namespace,
                "labels": {DEFAULT_CONSTANTS.APP_LABEL: names.app_label},
            },
            "spec": {
                "type": DEFAULT_CONSTANTS.SERVICE_TYPE,
                "selector": {DEFAULT_CONSTANTS.APP_LABEL: names.app_label},
                "ports": [
                    {
                        "port": DEFAULT_CONSTANTS.SERVICE_PORT,
                        "protocol": DEFAULT_CONSTANTS.SERVICE_PROTOCOL,
                        "targetPort": DEFAULT_CONSTANTS.SERVICE_PORT,
                    }
                ],
            },
        }

