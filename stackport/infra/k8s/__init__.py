"""Kubernetes infrastructure abstraction layer.

This module provides a clean abstraction over the control-plane operations
Stackport needs, with a kr8s backend for real clusters and an in-memory
backend for local development and tests.

Example:
    from stackport.infra.k8s import InMemoryClusterController, run_sync

    controller = InMemoryClusterController()
    reachable = run_sync(controller.ping())
"""

from .builder import ClusterResourceBuilder, ResourceGraph
from .controller import ClusterController, Manifest, ObjectRef, ResourceKind
from .memory_controller import InMemoryClusterController
from .naming import ResourceNames, base_name
from .utils import run_sync

__all__ = [
    # Controller classes
    "ClusterController",
    "InMemoryClusterController",
    # Data classes
    "Manifest",
    "ObjectRef",
    "ResourceKind",
    "ResourceGraph",
    "ResourceNames",
    # Builders
    "ClusterResourceBuilder",
    "base_name",
    # Utilities
    "run_sync",
]
