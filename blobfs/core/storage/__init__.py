"""Write path for blob storage: output files, buffered streams and backends."""

from blobfs.core.storage.blob import (
    BlobMetadata,
    BlobStorageBackend,
    ExistenceOption,
    UploadHandle,
)
from blobfs.core.storage.errors import (
    BackendError,
    BackendFailureError,
    BlobAlreadyExistsError,
    BlobNotFoundError,
    BlobStorageConnectionError,
    BlobStorageError,
    InvalidArgumentError,
    translate_error,
)
from blobfs.core.storage.file_system import BlobFileSystem
from blobfs.core.storage.location import Location
from blobfs.core.storage.memory import LocalMemoryContext, MemoryTracker
from blobfs.core.storage.output_file import DEFAULT_WRITE_BLOCK_SIZE, BlobOutputFile
from blobfs.core.storage.output_stream import BlobOutputStream
from blobfs.core.storage.registry import (
    BackendConfigError,
    BackendNotFoundError,
    BlobBackendRegistry,
    get_blob_backend,
    get_default_registry,
)

__all__ = [
    # Write path
    "BlobFileSystem",
    "BlobOutputFile",
    "BlobOutputStream",
    "DEFAULT_WRITE_BLOCK_SIZE",
    "Location",
    "MemoryTracker",
    "LocalMemoryContext",
    # Backend contract
    "BlobStorageBackend",
    "BlobMetadata",
    "ExistenceOption",
    "UploadHandle",
    # Errors
    "BlobStorageError",
    "BlobAlreadyExistsError",
    "InvalidArgumentError",
    "BackendFailureError",
    "BlobNotFoundError",
    "BlobStorageConnectionError",
    "BackendError",
    "translate_error",
    # Registry
    "BlobBackendRegistry",
    "BackendConfigError",
    "BackendNotFoundError",
    "get_default_registry",
    "get_blob_backend",
]
