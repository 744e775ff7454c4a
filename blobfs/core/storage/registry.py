"""Backend registry for named blob storage backends."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from blobfs.core.storage.backends.filesystem_backend import FilesystemBackend
from blobfs.core.storage.backends.minio_backend import MinIOBackend
from blobfs.core.storage.backends.prefixed_backend import PrefixedBlobBackend
from blobfs.core.storage.blob import BlobStorageBackend
from blobfs.core.storage.output_file import DEFAULT_WRITE_BLOCK_SIZE
from blobfs.core.utils.config import ConfigError, load_and_resolve_config, parse_data_size

logger = logging.getLogger(__name__)

CONFIG_MODULE_ENV = "BLOBFS_CONFIG_MODULE"
DEFAULT_CONFIG_MODULE = "blobfs.core.storage.blob_config"


class BackendConfigError(Exception):
    """Raised when backend configuration is invalid."""

    pass


class BackendNotFoundError(Exception):
    """Raised when a named backend is not found in configuration."""

    pass


class BlobBackendRegistry:
    """Registry for managing named blob storage backends.

    Names may carry a namespace in dot notation; everything after the first
    dot becomes a path prefix inside the base backend.

    Examples:
        >>> registry = BlobBackendRegistry()
        >>> backend = registry.get_backend("local")
        >>> backend = registry.get_backend("local.exports.daily")
    """

    def __init__(self, configuration: dict[str, dict[str, Any]] | None = None):
        """Initialize the registry.

        Args:
            configuration: Backend configuration dict. If None, it is loaded from
                the module named by BLOBFS_CONFIG_MODULE (default:
                blobfs.core.storage.blob_config) with inheritance resolved
        """
        if configuration is None:
            module_path = os.getenv(CONFIG_MODULE_ENV, DEFAULT_CONFIG_MODULE)
            configuration = load_and_resolve_config(module_path, default={})

        self._config = configuration
        self._backend_cache: dict[str, BlobStorageBackend] = {}

    def parse_name(self, name: str) -> tuple[str, str]:
        """Split a backend name into base name and prefix.

        Examples:
            >>> registry.parse_name("local")
            ("local", "")
            >>> registry.parse_name("local.exports.daily")
            ("local", "exports/daily")
        """
        base_name, _, namespace = name.partition(".")
        return base_name, namespace.replace(".", "/")

    def _base_config(self, name: str) -> dict[str, Any]:
        base_name, _ = self.parse_name(name)
        if base_name not in self._config:
            available = ", ".join(self._config.keys())
            raise BackendNotFoundError(
                f"Backend '{base_name}' not found in configuration. "
                f"Available backends: {available or 'none'}"
            )
        return self._config[base_name]

    def create_backend(self, config: dict[str, Any]) -> BlobStorageBackend:
        """Create a backend instance from configuration.

        Args:
            config: Backend configuration dict with "type" and backend-specific params

        Raises:
            BackendConfigError: If configuration is invalid
        """
        backend_type = config.get("type")

        if not backend_type:
            raise BackendConfigError("Backend configuration must specify 'type'")

        if backend_type == "filesystem":
            base_path = config.get("base_path")
            if not base_path:
                raise BackendConfigError("Filesystem backend requires 'base_path'")
            backend: BlobStorageBackend = FilesystemBackend(base_path=Path(base_path))

        elif backend_type == "minio":
            required_fields = ["endpoint", "access_key", "secret_key"]
            missing = [f for f in required_fields if not config.get(f)]
            if missing:
                raise BackendConfigError(
                    f"MinIO backend missing required fields: {', '.join(missing)}"
                )

            backend = MinIOBackend(
                endpoint=config["endpoint"],
                access_key=config["access_key"],
                secret_key=config["secret_key"],
                secure=config.get("secure", True),
                region=config.get("region"),
                bucket=config.get("bucket") or None,
            )

        else:
            raise BackendConfigError(f"Unknown backend type: {backend_type}")

        if config.get("prefix"):
            backend = PrefixedBlobBackend(backend, config["prefix"])
        return backend

    def get_backend(self, name: str, use_cache: bool = True) -> BlobStorageBackend:
        """Get a backend instance by name.

        Args:
            name: Backend name with optional namespace (e.g., "local", "local.exports")
            use_cache: Whether to use cached backend instances

        Raises:
            BackendNotFoundError: If base name not found in configuration
            BackendConfigError: If backend configuration is invalid
        """
        if use_cache and name in self._backend_cache:
            return self._backend_cache[name]

        base_name, prefix = self.parse_name(name)
        base_config = self._base_config(name)

        if use_cache and base_name in self._backend_cache:
            base_backend = self._backend_cache[base_name]
        else:
            base_backend = self.create_backend(base_config)
            if use_cache:
                self._backend_cache[base_name] = base_backend

        backend = PrefixedBlobBackend(base_backend, prefix) if prefix else base_backend

        if use_cache:
            self._backend_cache[name] = backend

        logger.info(f"Created backend for '{name}' (base: {base_name}, prefix: {prefix or 'none'})")
        return backend

    def get_write_block_size(self, name: str) -> int:
        """Return the configured write block size in bytes for a backend name.

        Raises:
            BackendNotFoundError: If base name not found in configuration
            BackendConfigError: If the configured size is invalid
        """
        value = self._base_config(name).get("write_block_size", DEFAULT_WRITE_BLOCK_SIZE)
        try:
            return parse_data_size(value)
        except ConfigError as e:
            raise BackendConfigError(f"Invalid write_block_size for '{name}': {e}") from e

    def list_backends(self) -> list[str]:
        """List all configured backend names."""
        return list(self._config.keys())

    def register(self, name: str, config: dict[str, Any]) -> None:
        """Register a new backend configuration.

        Cached instances of ``name`` and its namespaces are dropped.
        """
        self._config[name] = config
        stale = [k for k in self._backend_cache if k == name or k.startswith(f"{name}.")]
        for key in stale:
            del self._backend_cache[key]

    def clear_cache(self) -> None:
        """Clear the backend instance cache."""
        self._backend_cache.clear()


# Global registry instance
_default_registry: BlobBackendRegistry | None = None


def get_default_registry() -> BlobBackendRegistry:
    """Get the default global registry instance."""
    global _default_registry
    if _default_registry is None:
        _default_registry = BlobBackendRegistry()
    return _default_registry


def get_blob_backend(name: str) -> BlobStorageBackend:
    """Get a blob backend by name from the default registry.

    Examples:
        >>> from blobfs.core.storage.registry import get_blob_backend
        >>> backend = get_blob_backend("local.exports")
    """
    return get_default_registry().get_backend(name)
