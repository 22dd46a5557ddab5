"""Core services exports."""

# Orchestration
from .locks import KeyedLock
from .orchestrator import DeploymentOrchestrator, ProtocolRun
from .retry import ConflictRetry, RetryPolicy, RetryScope
from .steps import CREATE_STEPS, DELETE_STEPS, ProtocolStep

__all__ = [
    # Orchestration
    "DeploymentOrchestrator",
    "ProtocolRun",
    "ProtocolStep",
    "CREATE_STEPS",
    "DELETE_STEPS",
    # Concurrency
    "ConflictRetry",
    "RetryPolicy",
    "RetryScope",
    "KeyedLock",
]
