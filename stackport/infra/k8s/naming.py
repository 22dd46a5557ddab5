"""Deterministic cluster object names for a logical deployment.

Names are derived only from the record id and owner id, so update and delete
can find the objects created earlier without any lookup table.
"""

from __future__ import annotations

from dataclasses import dataclass

from stackport.infra.constants import DEFAULT_CONSTANTS


def base_name(deployment_id: int, owner_id: int) -> str:
    """Return the base name shared by every object of one deployment.

    Both ids are rendered in decimal and separated by fixed literals, so
    distinct (deployment_id, owner_id) pairs never produce the same name.
    """
    if deployment_id < 0 or owner_id < 0:
        raise ValueError("deployment and owner ids must be non-negative")
    return f"deployment-{deployment_id}-user-{owner_id}"


@dataclass(frozen=True)
class ResourceNames:
    """The family of object names for one (deployment id, owner id) pair."""

    base: str

    @classmethod
    def for_deployment(cls, deployment_id: int, owner_id: int) -> ResourceNames:
        return cls(base=base_name(deployment_id, owner_id))

    @property
    def app_label(self) -> str:
        return self.base

    @property
    def workload(self) -> str:
        return self.base + DEFAULT_CONSTANTS.WORKLOAD_SUFFIX

    @property
    def container(self) -> str:
        return self.workload

    @property
    def service(self) -> str:
        return self.base + DEFAULT_CONSTANTS.SERVICE_SUFFIX

    @property
    def volume(self) -> str:
        return self.base + DEFAULT_CONSTANTS.VOLUME_SUFFIX

    @property
    def claim(self) -> str:
        return self.base + DEFAULT_CONSTANTS.CLAIM_SUFFIX

    @property
    def mount(self) -> str:
        return self.base + DEFAULT_CONSTANTS.MOUNT_SUFFIX

    @property
    def storage_class(self) -> str:
        return self.base + DEFAULT_CONSTANTS.STORAGE_CLASS_SUFFIX

    @property
    def mount_path(self) -> str:
        return f"/var/lib/{self.mount}/data"

    def host_path(self, root: str = DEFAULT_CONSTANTS.DEFAULT_HOST_PATH_ROOT) -> str:
        return f"{root.rstrip('/')}/{self.base}/data"
