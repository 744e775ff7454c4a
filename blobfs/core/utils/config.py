"""Configuration loading utilities using importlib.

Backend configurations are plain Python modules exposing a dict (by default
named ``CONFIGURATION``). Entries may extend one another through the
``"__inherits__"`` key, and sizes may be written as strings such as ``"16MB"``.
"""

from __future__ import annotations

import importlib
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

INHERITS_KEY = "__inherits__"

_SIZE_UNITS = {
    "B": 1,
    "kB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*$")


class ConfigError(Exception):
    """Raised when configuration loading or resolution fails."""

    pass


def load_config_from_module(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: Any | None = None,
) -> Any:
    """Import ``module_path`` and return its ``config_name`` attribute.

    Args:
        module_path: Dotted module path (e.g., "blobfs.core.storage.blob_config")
        config_name: Name of the configuration object to retrieve
        default: Value returned if the module or attribute is missing

    Returns:
        The configuration object, or ``default``
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.warning(f"Could not import module '{module_path}': {e}")
        return default

    if not hasattr(module, config_name):
        logger.warning(f"Module '{module_path}' does not have attribute '{config_name}'")
        return default

    logger.debug(f"Loaded configuration from {module_path}.{config_name}")
    return getattr(module, config_name)


def resolve_config_inheritance(config_dict: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Expand ``"__inherits__"`` references into complete entries.

    A child entry starts from a copy of its (resolved) parent and overrides
    keys it defines itself. The inheritance key is dropped from the result.

    Raises:
        ConfigError: On circular inheritance or a missing parent

    Examples:
        >>> resolved = resolve_config_inheritance({
        ...     "minio": {"type": "minio", "endpoint": "localhost:9000"},
        ...     "minio.archive": {"__inherits__": "minio", "prefix": "archive"},
        ... })
        >>> resolved["minio.archive"]["endpoint"]
        'localhost:9000'
    """
    resolved: dict[str, dict[str, Any]] = {}

    def resolve(name: str, chain: tuple[str, ...]) -> dict[str, Any]:
        if name in chain:
            raise ConfigError(f"Circular inheritance detected: {' -> '.join(chain + (name,))}")
        if name in resolved:
            return resolved[name]

        entry = config_dict[name]
        parent_name = entry.get(INHERITS_KEY)
        if parent_name is None:
            result = dict(entry)
        else:
            if parent_name not in config_dict:
                raise ConfigError(
                    f"Configuration '{name}' inherits from '{parent_name}', "
                    f"but '{parent_name}' not found"
                )
            result = dict(resolve(parent_name, chain + (name,)))
            result.update({k: v for k, v in entry.items() if k != INHERITS_KEY})
            logger.debug(f"Resolved inheritance for '{name}' from '{parent_name}'")

        resolved[name] = result
        return result

    for name in config_dict:
        resolve(name, ())
    return resolved


def load_and_resolve_config(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: dict[str, dict[str, Any]] | None = None,
) -> dict[str, dict[str, Any]]:
    """Load a configuration dict from a module and resolve its inheritance.

    Returns ``default`` (or an empty dict) if the module does not provide a dict.
    """
    raw_config = load_config_from_module(module_path, config_name)

    if not isinstance(raw_config, dict):
        logger.warning(f"Invalid configuration loaded from {module_path}, using default")
        return default or {}

    resolved = resolve_config_inheritance(raw_config)
    logger.info(f"Loaded and resolved {len(resolved)} configurations from {module_path}")
    return resolved


def parse_data_size(value: int | str) -> int:
    """Convert a size such as ``1048576``, ``"512kB"`` or ``"16MB"`` to bytes.

    Units are binary (``kB`` = 1024 bytes). Fractions are allowed as long as the
    result is a whole number of bytes.

    Raises:
        ConfigError: If the value is malformed or negative
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid data size: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ConfigError(f"Data size is negative: {value}")
        return value

    match = _SIZE_PATTERN.match(str(value))
    if not match or match.group(2) not in _SIZE_UNITS:
        raise ConfigError(f"Invalid data size: {value!r}")

    number, unit = match.groups()
    size = float(number) * _SIZE_UNITS[unit]
    if size != int(size):
        raise ConfigError(f"Data size is not a whole number of bytes: {value!r}")
    return int(size)
