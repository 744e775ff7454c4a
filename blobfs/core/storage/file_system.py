"""File system entry point handing out output files for locations."""

from __future__ import annotations

import logging

from blobfs.core.storage.blob import BlobStorageBackend
from blobfs.core.storage.errors import BlobNotFoundError, InvalidArgumentError, translate_error
from blobfs.core.storage.location import Location
from blobfs.core.storage.output_file import DEFAULT_WRITE_BLOCK_SIZE, BlobOutputFile
from blobfs.core.storage.registry import BlobBackendRegistry, get_default_registry

logger = logging.getLogger(__name__)


class BlobFileSystem:
    """High-level blob file system interface with pluggable backends."""

    def __init__(self, backend: BlobStorageBackend, write_block_size: int = DEFAULT_WRITE_BLOCK_SIZE):
        """Initialize blob file system.

        Args:
            backend: Storage backend implementation
            write_block_size: Block size for every output file handed out
        """
        if write_block_size < 0:
            raise InvalidArgumentError("write_block_size is negative")
        self._backend = backend
        self._write_block_size = write_block_size

    @classmethod
    def from_name(cls, name: str, registry: BlobBackendRegistry | None = None) -> BlobFileSystem:
        """Create a file system for a named backend.

        Args:
            name: Backend name, optionally namespaced (e.g., "local.exports")
            registry: Registry to resolve the name with (default: global registry)

        Examples:
            >>> fs = BlobFileSystem.from_name("minio")
            >>> fs.new_output_file("s3://blobfs/reports/daily.csv").create_exclusive(b"...")
        """
        registry = registry or get_default_registry()
        return cls(registry.get_backend(name), registry.get_write_block_size(name))

    @property
    def backend(self) -> BlobStorageBackend:
        return self._backend

    @staticmethod
    def _as_location(location: Location | str) -> Location:
        if isinstance(location, Location):
            return location
        return Location.parse(location)

    def new_output_file(self, location: Location | str) -> BlobOutputFile:
        """Return an output file for ``location``. No backend call is made."""
        return BlobOutputFile(self._as_location(location), self._backend, self._write_block_size)

    def exists(self, location: Location | str) -> bool:
        """Check if a blob exists.

        Raises:
            BackendFailureError: If the backend fails
        """
        location = self._as_location(location)
        try:
            return self._backend.get_metadata(location) is not None
        except Exception as e:
            raise translate_error(e, location, "checking file") from e

    def read(self, location: Location | str) -> bytes:
        """Retrieve a blob.

        Raises:
            BlobNotFoundError: If the blob doesn't exist
            BackendFailureError: If the backend fails
        """
        location = self._as_location(location)
        try:
            return self._backend.read(location)
        except BlobNotFoundError:
            raise
        except Exception as e:
            raise translate_error(e, location, "reading file") from e
