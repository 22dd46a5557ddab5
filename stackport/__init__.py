"""Stackport: managed stateful workloads on a shared Kubernetes cluster."""

__version__ = "0.1.0"
