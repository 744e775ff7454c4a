"""Blob storage backend configuration.

This module defines the CONFIGURATION dict which maps backend names to their
connection parameters. Point ``BLOBFS_CONFIG_MODULE`` at another module to use
your own.

Example usage:
    from blobfs.core.storage import BlobFileSystem

    # Use named backend
    fs = BlobFileSystem.from_name("local")

    # Use with namespace
    fs = BlobFileSystem.from_name("local.exports")

Every entry may set ``write_block_size`` (bytes or a string like "16MB"), and
may reuse another entry through "__inherits__".
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from blobfs.core.utils.env import load_env_file_if_present

load_env_file_if_present()


def _default_base_path() -> Path:
    """Return the default filesystem storage root."""
    configured_path = os.environ.get("BLOBFS_STORAGE_PATH")
    if configured_path:
        return Path(configured_path).expanduser()
    return Path.home() / ".blobfs" / "blob_storage"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_BASE_PATH = _default_base_path()
DEFAULT_WRITE_BLOCK_SIZE = os.getenv("BLOBFS_WRITE_BLOCK_SIZE", "16MB")

CONFIGURATION: dict[str, dict[str, Any]] = {
    # Local filesystem backend for development
    "local": {
        "type": "filesystem",
        "base_path": str(DEFAULT_BASE_PATH),
        "write_block_size": DEFAULT_WRITE_BLOCK_SIZE,
    },
    # MinIO, e.g. from docker compose
    "minio": {
        "type": "minio",
        "endpoint": os.getenv("MINIO_ENDPOINT", "localhost:9000"),
        "access_key": os.getenv("MINIO_ACCESS_KEY", "minioadmin"),
        "secret_key": os.getenv("MINIO_SECRET_KEY", "minioadmin"),
        "bucket": os.getenv("MINIO_BUCKET", "blobfs"),
        "secure": _env_flag("MINIO_SECURE", False),
        "write_block_size": DEFAULT_WRITE_BLOCK_SIZE,
    },
    # Example production configuration
    "prod": {
        "__inherits__": "minio",
        "endpoint": os.getenv("S3_ENDPOINT", "s3.amazonaws.com"),
        "access_key": os.getenv("AWS_ACCESS_KEY_ID", ""),
        "secret_key": os.getenv("AWS_SECRET_ACCESS_KEY", ""),
        "bucket": os.getenv("S3_BUCKET", ""),
        "secure": True,
        "write_block_size": "32MB",
    },
    # Temporary storage backend, no buffering
    "tmp": {
        "type": "filesystem",
        "base_path": "/tmp/blobfs",
        "write_block_size": 0,
    },
}
