"""
Configuration for the permission engine.

Exports the configuration model, its defaults and the helpers that build it.
"""

from .defaults import (
    DEFAULT_BLOCKED_DIRS,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_DANGEROUS_COMMANDS,
    DEFAULT_MAX_PATH_DEPTH,
    DEFAULT_SENSITIVE_PATTERNS,
)
from .loader import get_working_directory, load_permission_config, merge_configs
from .permissions_config import PermissionConfig

__all__ = [
    # Constants
    "DEFAULT_BLOCKED_DIRS",
    "DEFAULT_SENSITIVE_PATTERNS",
    "DEFAULT_DANGEROUS_COMMANDS",
    "DEFAULT_MAX_PATH_DEPTH",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_CACHE_MAX_SIZE",
    # Config models
    "PermissionConfig",
    # Loader functions
    "load_permission_config",
    "get_working_directory",
    "merge_configs",
]
