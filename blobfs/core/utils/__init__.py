"""Utility functions for blobfs."""

from blobfs.core.utils.config import (
    ConfigError,
    load_and_resolve_config,
    load_config_from_module,
    parse_data_size,
    resolve_config_inheritance,
)
from blobfs.core.utils.env import load_env_file_if_present

__all__ = [
    "load_env_file_if_present",
    "load_config_from_module",
    "load_and_resolve_config",
    "resolve_config_inheritance",
    "parse_data_size",
    "ConfigError",
]
