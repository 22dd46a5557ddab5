from __future__ import annotations

from cachetools.func import lru_cache  # type: ignore
from loguru import logger

from stackport.app.runtime.config.config_data import ClusterConfig
from stackport.infra.k8s.controller import ClusterController


def build_cluster_controller(cluster: ClusterConfig) -> ClusterController:
    """Instantiate the controller backend selected in configuration.

    Args:
        cluster: Cluster section of the application configuration

    Returns:
        A ClusterController for the configured backend
    """
    if cluster.backend == "memory":
        from stackport.infra.k8s.memory_controller import InMemoryClusterController

        logger.info("Using in-memory control plane")
        return InMemoryClusterController(namespace=cluster.namespace)

    from stackport.infra.k8s.kr8s_controller import Kr8sClusterController

    logger.info(f"Using kr8s control plane (namespace={cluster.namespace})")
    return Kr8sClusterController(
        kubeconfig=cluster.kubeconfig or None,
        context=cluster.context or None,
    )


@lru_cache(maxsize=1)
def get_cluster_controller() -> ClusterController:
    """Get the process-wide ClusterController for the loaded configuration."""
    from stackport.app.runtime.context import get_config

    return build_cluster_controller(get_config().cluster)
