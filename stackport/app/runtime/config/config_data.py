"""Typed configuration models validated from config.yaml."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stackport.app.core.catalog import CatalogEntry, ImageCatalog
from stackport.app.core.services.retry import RetryPolicy
from stackport.infra.constants import DEFAULT_CONSTANTS


class AppConfig(BaseModel):
    name: str = "stackport"
    environment: Literal["development", "test", "production"] = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///./stackport.db"
    echo: bool = False

    @property
    def connection_string(self) -> str:
        return self.url


class RetryConfig(BaseModel):
    """Backoff for conflict-retry scopes of the update protocol."""

    attempts: int = Field(default=5, ge=1)
    initial_delay_seconds: float = Field(default=0.01, ge=0)
    factor: float = Field(default=2.0, ge=1)
    jitter: float = Field(default=0.1, ge=0)
    max_delay_seconds: float = Field(default=1.0, ge=0)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.attempts,
            initial_delay=self.initial_delay_seconds,
            factor=self.factor,
            jitter=self.jitter,
            max_delay=self.max_delay_seconds,
        )


class ClusterConfig(BaseModel):
    backend: Literal["kr8s", "memory"] = "kr8s"
    namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE
    kubeconfig: str | None = None
    context: str | None = None
    call_timeout_seconds: float = Field(
        default=DEFAULT_CONSTANTS.DEFAULT_CALL_TIMEOUT_SECONDS, gt=0
    )
    host_path_root: str = DEFAULT_CONSTANTS.DEFAULT_HOST_PATH_ROOT
    retry: RetryConfig = Field(default_factory=RetryConfig)


class ImageConfig(BaseModel):
    supports_volume: bool = False
    required_env_vars: list[str] = Field(default_factory=list)


class CatalogConfig(BaseModel):
    images: dict[str, ImageConfig] = Field(default_factory=dict)


class ConfigData(BaseModel):
    """Root configuration object (the ``config:`` section of config.yaml)."""

    model_config = ConfigDict(extra="ignore")

    app: AppConfig = Field(default_factory=AppConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)

    def build_catalog(self) -> ImageCatalog:
        """Freeze the configured images into an ImageCatalog."""
        return ImageCatalog(
            {
                name: CatalogEntry.of(image.supports_volume, image.required_env_vars)
                for name, image in self.catalog.images.items()
            }
        )
