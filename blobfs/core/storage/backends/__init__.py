"""Storage backend implementations."""

from blobfs.core.storage.backends.filesystem_backend import FilesystemBackend
from blobfs.core.storage.backends.minio_backend import MinIOBackend
from blobfs.core.storage.backends.prefixed_backend import PrefixedBlobBackend

__all__ = [
    "FilesystemBackend",
    "MinIOBackend",
    "PrefixedBlobBackend",
]
