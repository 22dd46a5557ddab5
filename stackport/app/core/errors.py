"""Error taxonomy shared by the orchestrator, the record store and callers.

Every error carries a human-readable ``message`` and optional ``details``.
Errors raised while executing an orchestration protocol are additionally
annotated with the protocol step that failed and the steps that had already
completed, so callers can tell exactly which cluster objects may be stale.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackport.app.core.services.steps import ProtocolStep


class StackportError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        self.step: ProtocolStep | None = None
        self.completed_steps: tuple[ProtocolStep, ...] = ()
        super().__init__(message)


class ValidationError(StackportError):
    """A candidate deployment violates one or more field constraints."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Validation failed for: {fields}")


class NotFoundError(StackportError):
    """A referenced record or cluster object does not exist."""


class DuplicateError(StackportError):
    """The record store rejected an insert because of a uniqueness violation."""


class ConflictError(StackportError):
    """The control plane rejected a write made against a stale resource version."""


class ClusterAPIError(StackportError):
    """Transport, permission, timeout or otherwise unexpected control-plane failure."""


class RetryExhaustedError(StackportError):
    """A conflict-retry scope ran out of attempts."""

    def __init__(self, attempts: int, last_error: ConflictError):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Gave up after {attempts} conflicting attempts",
            details=last_error.message,
        )


class InconsistentStateError(StackportError):
    """The durable record and the cluster no longer agree.

    Raised by callers when a protocol fails after it had already changed the
    cluster, or when compensating a failed protocol on the record side fails.
    """

    def __init__(
        self,
        message: str,
        *,
        failed_step: ProtocolStep | None = None,
        completed_steps: tuple[ProtocolStep, ...] = (),
        details: str | None = None,
    ):
        super().__init__(message, details)
        self.failed_step = failed_step
        self.step = failed_step
        self.completed_steps = completed_steps
