"""Load storage driver configuration from registry-style YAML files.

Example:
    storage:
      bos:
        accesskeyid: ${BOS_ACCESS_KEY_ID}
        accesskeysecret: ${BOS_SECRET_ACCESS_KEY}
        bucket: registry
        endpoint: ${BOS_ENDPOINT:-}
      delete:
        enabled: true
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from bos_driver.exceptions import ConfigurationError

# Keys under `storage:` that configure the registry rather than a driver
RESERVED_STORAGE_KEYS = frozenset({"maintenance", "cache", "delete", "redirect"})


class StorageConfig(BaseModel):
    """The single driver section selected from a `storage:` block."""

    driver: str = Field(..., description="Registered driver name")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Driver parameters")

    @field_validator("parameters", mode="before")
    @classmethod
    def validate_parameters(cls, v: Any) -> Dict[str, Any]:
        """Treat an empty driver section as no parameters."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError(f"driver parameters must be a mapping, got {type(v).__name__}")
        return v


def substitute_env_vars(value: Any) -> Any:
    """
    Recursively substitute environment variables in configuration values.

    Supports patterns:
    - ${VAR} - Replace with environment variable value (raises error if not set)
    - ${VAR:-default} - Replace with VAR or use default if unset or empty
    - $$ - Escape sequence for literal $

    Raises:
        ConfigurationError: If a required environment variable is not set
    """
    if isinstance(value, str):
        result = value.replace("$$", "\x00")

        def replace_var(match: re.Match[str]) -> str:
            var_with_default = match.group(1)

            if ":-" in var_with_default:
                var_name, default_value = var_with_default.split(":-", 1)
                env_value = os.environ.get(var_name)
                if env_value is None or env_value == "":
                    return default_value
                return env_value

            env_value = os.environ.get(var_with_default)
            if env_value is None:
                raise ConfigurationError(
                    f"Required environment variable '{var_with_default}' is not set",
                    variable=var_with_default,
                )
            return env_value

        result = re.sub(r"\$\{([^}]+)\}", replace_var, result)
        return result.replace("\x00", "$")

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(item) for item in value]

    return value


def parse_storage_section(data: Optional[Dict[str, Any]]) -> StorageConfig:
    """Pick the driver section out of a parsed configuration document.

    Raises:
        ConfigurationError: If there is no storage section or not exactly one driver
    """
    if not isinstance(data, dict) or "storage" not in data:
        raise ConfigurationError("Missing required 'storage' section in configuration")

    storage = data["storage"]
    if not isinstance(storage, dict):
        raise ConfigurationError("'storage' section must be a mapping")

    drivers = [key for key in storage if key not in RESERVED_STORAGE_KEYS]
    if not drivers:
        raise ConfigurationError("No storage driver configured in 'storage' section")
    if len(drivers) > 1:
        raise ConfigurationError(
            f"Exactly one storage driver must be configured, got: {', '.join(drivers)}"
        )

    name = drivers[0]
    try:
        return StorageConfig(driver=name, parameters=substitute_env_vars(storage[name]))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid '{name}' storage configuration: {e}") from e


def load_storage_config(file_path: str) -> StorageConfig:
    """
    Load the storage driver configuration from a YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If YAML is invalid or the storage section is unusable
    """
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(config_path, "r") as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e

    return parse_storage_section(raw_config)
