"""Internal prefix wrapper for backends.

This module is for internal use by the registry only and should not be imported directly.
"""

from __future__ import annotations

from dataclasses import replace

from blobfs.core.storage.blob import (
    BlobMetadata,
    BlobStorageBackend,
    ExistenceOption,
    UploadHandle,
)
from blobfs.core.storage.location import Location


class PrefixedBlobBackend(BlobStorageBackend):
    """Wrapper that adds a path prefix to every location for any backend.

    Used by the registry to support dotted names such as ``"local.images"``.
    Handles returned by :meth:`create` belong to the wrapped backend and are
    passed back to it untouched.
    """

    def __init__(self, backend: BlobStorageBackend, prefix: str = ""):
        """Initialize prefixed backend wrapper.

        Args:
            backend: The underlying backend to wrap
            prefix: Prefix to add to all paths (e.g., "images/thumbnails")
        """
        self._backend = backend
        # Normalize prefix: ensure it ends with "/" if not empty
        self._prefix = prefix.strip("/") + "/" if prefix.strip("/") else ""

    @property
    def prefix(self) -> str:
        return self._prefix

    def _add_prefix(self, location: Location) -> Location:
        """Add prefix to a location path."""
        return location.with_path(self._prefix + location.path) if self._prefix else location

    def get_metadata(self, location: Location) -> BlobMetadata | None:
        """Probe using the prefixed path, report the caller's location."""
        metadata = self._backend.get_metadata(self._add_prefix(location))
        if metadata is None:
            return None
        return replace(metadata, location=location)

    def create(
        self, location: Location, content: bytes | None, option: ExistenceOption
    ) -> UploadHandle | None:
        return self._backend.create(self._add_prefix(location), content, option)

    def append_block(self, handle: UploadHandle, data: bytes) -> None:
        self._backend.append_block(handle, data)

    def finalize(self, handle: UploadHandle) -> None:
        self._backend.finalize(handle)

    def abort(self, handle: UploadHandle) -> None:
        self._backend.abort(handle)

    def read(self, location: Location) -> bytes:
        return self._backend.read(self._add_prefix(location))
