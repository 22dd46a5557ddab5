"""Application configuration: YAML loading, env substitution and typed models."""

from stackport.app.runtime.config.config_data import (
    AppConfig,
    CatalogConfig,
    ClusterConfig,
    ConfigData,
    DatabaseConfig,
    ImageConfig,
    RetryConfig,
)

__all__ = [
    "AppConfig",
    "CatalogConfig",
    "ClusterConfig",
    "ConfigData",
    "DatabaseConfig",
    "ImageConfig",
    "RetryConfig",
]
