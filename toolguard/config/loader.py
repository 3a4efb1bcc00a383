"""Configuration building utilities."""

import logging
import os
from typing import Any

from pydantic import ValidationError

from ..exceptions import ConfigError
from .defaults import WORKING_DIR_ENV
from .permissions_config import PermissionConfig

logger = logging.getLogger(__name__)


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two configuration dictionaries.

    Nested dictionaries are merged key by key; every other value (lists
    included) in the override replaces the base value outright.

    Args:
        base: Base configuration
        override: Override configuration (takes precedence)

    Returns:
        Merged configuration dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def load_permission_config(overrides: dict[str, Any] | None = None) -> PermissionConfig:
    """
    Build a validated PermissionConfig from the defaults plus overrides.

    The overrides are an in-memory dict (already read from wherever the host
    keeps its settings). Supplying e.g. ``{"blocked_dirs": []}`` replaces the
    default blocked directories entirely.

    Args:
        overrides: Partial configuration taking precedence over the defaults

    Returns:
        The merged PermissionConfig

    Raises:
        ConfigError: If the merged configuration does not validate
    """
    config_data = PermissionConfig().model_dump(mode="json")
    if overrides:
        unknown = sorted(set(overrides) - set(config_data))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}", unknown)
        config_data = merge_configs(config_data, overrides)

    try:
        return PermissionConfig.model_validate(config_data)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        logger.warning("Rejected permission configuration: %s", "; ".join(errors))
        raise ConfigError("Configuration validation failed: " + "; ".join(errors), errors) from e


def get_working_directory() -> str:
    """
    Get the working directory from environment or default to cwd.

    Returns:
        The working directory path as a string
    """
    return os.environ.get(WORKING_DIR_ENV, os.getcwd())
