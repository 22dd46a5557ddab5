"""Named steps of the orchestration protocols."""

from __future__ import annotations

from enum import Enum

from stackport.infra.k8s.controller import ResourceKind


class ProtocolStep(str, Enum):
    """One cluster write within a create, update or delete protocol."""

    CREATE_VOLUME = "create-volume"
    CREATE_CLAIM = "create-claim"
    CREATE_WORKLOAD = "create-workload"
    CREATE_SERVICE = "create-service"

    UPDATE_WORKLOAD = "update-workload"
    RESIZE_VOLUME = "resize-volume"
    RESIZE_CLAIM = "resize-claim"
    UPDATE_SERVICE = "update-service"

    DELETE_VOLUME = "delete-volume"
    DELETE_CLAIM = "delete-claim"
    DELETE_SERVICE = "delete-service"
    DELETE_WORKLOAD = "delete-workload"

    @property
    def kind(self) -> ResourceKind:
        suffix = self.value.split("-", 1)[1]
        return {
            "volume": ResourceKind.VOLUME,
            "claim": ResourceKind.CLAIM,
            "workload": ResourceKind.WORKLOAD,
            "service": ResourceKind.SERVICE,
        }[suffix]


CREATE_STEPS = (
    ProtocolStep.CREATE_VOLUME,
    ProtocolStep.CREATE_CLAIM,
    ProtocolStep.CREATE_WORKLOAD,
    ProtocolStep.CREATE_SERVICE,
)

DELETE_STEPS = (
    ProtocolStep.DELETE_VOLUME,
    ProtocolStep.DELETE_CLAIM,
    ProtocolStep.DELETE_SERVICE,
    ProtocolStep.DELETE_WORKLOAD,
)
