"""Load config.yaml into ConfigData with environment substitution."""

import os
from pathlib import Path
from typing import Any, Literal, overload

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic_core import ValidationError

from stackport.app.core.catalog import DEFAULT_CATALOG
from stackport.app.runtime.config.config_data import ConfigData, ImageConfig
from stackport.app.runtime.config.config_utils import substitute_env_vars
from stackport.infra.constants import DEFAULT_PATHS

CONFIG_PATH = Path(os.getenv("STACKPORT_CONFIG", str(DEFAULT_PATHS.config_yaml)))


@overload
def load_config(file_path: Path = ..., *, processed: Literal[False]) -> dict[str, Any]: ...


@overload
def load_config(file_path: Path = ..., processed: Literal[True] = ...) -> ConfigData: ...


def load_config(
    file_path: Path = CONFIG_PATH, processed: bool = True
) -> ConfigData | dict[str, Any]:
    """
    Load a YAML file with environment variable substitution.

    Args:
        file_path: Path to the YAML file (default: config.yaml at the project root)
        processed: Whether to substitute environment variables and validate.
                  - True (default): substitute env vars and validate as ConfigData
                  - False: return raw dict without validation or substitution

    Returns:
        ConfigData if processed, raw dict otherwise

    Raises:
        ValueError: If required environment variables are missing, validation fails,
                   or YAML structure is invalid (missing 'config' key)
        FileNotFoundError: If the YAML file doesn't exist

    Side Effects (when processed):
        - Loads ``.env`` next to the config file without overriding set variables
        - Mutates os.environ with variables derived from {APP_ENVIRONMENT}_*
          prefixed variables (e.g., PRODUCTION_DATABASE_URL -> DATABASE_URL)
        - Falls back to the built-in image catalog when none is configured
    """
    with open(file_path) as f:
        content = f.read()

    if processed:
        load_dotenv(file_path.parent / ".env", override=False)

        env_mode = os.getenv("APP_ENVIRONMENT", "development")
        logger.info(f"Loading configuration for environment: {env_mode}")

        prefix = f"{env_mode.upper()}_"
        env_variables = [
            (var, value) for var, value in os.environ.items() if var.startswith(prefix)
        ]
        logger.info(f"Applying {len(env_variables)} environment-specific overrides")
        logger.debug(f"Override keys: {[var for var, _ in env_variables]}")

        for var_name, var_value in env_variables:
            os.environ[var_name[len(prefix) :]] = var_value

        content = substitute_env_vars(content)

    try:
        loaded: dict[str, Any] = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not processed:
        return loaded
    if not loaded:
        raise ValueError("Failed to parse YAML")
    if "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")

    try:
        config = ConfigData(**(loaded["config"] or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    if not config.catalog.images:
        logger.warning("No images configured, using the built-in catalog")
        config.catalog.images = {
            name: ImageConfig(
                supports_volume=entry.supports_volume,
                required_env_vars=sorted(entry.required_env_vars),
            )
            for name, entry in DEFAULT_CATALOG.enumerate()
        }

    if config.cluster.backend == "memory" and config.app.environment not in (
        "development",
        "test",
    ):
        logger.warning(
            f"In-memory control plane selected in {config.app.environment}; "
            "no real cluster resources will be created"
        )

    return config


def _string_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Quote strings holding ${...} placeholders or digits so they reload as strings."""
    if "${" in data or data.isdigit():
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style='"')
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


def save_config(config: ConfigData | dict[str, Any], file_path: Path = CONFIG_PATH) -> None:
    """Save the given configuration to a YAML file. In order to do it transactionally,
    it first writes to a temporary file and then renames it to the target path.

    Args:
        config: ConfigData instance (wrapped under ``config:``) or raw dict to save.
        file_path: Destination file
    """
    temp_path = file_path.with_suffix(".tmp")

    class QuotedDumper(yaml.SafeDumper):
        pass

    QuotedDumper.add_representer(str, _string_representer)

    serialized = config
    if isinstance(config, ConfigData):
        serialized = {"config": config.model_dump()}

    with open(temp_path, "w") as f:
        yaml.dump(
            serialized,
            f,
            Dumper=QuotedDumper,
            default_flow_style=False,
            sort_keys=False,
            indent=2,
        )
    temp_path.replace(file_path)
