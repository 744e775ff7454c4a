"""Blob storage backend contract for the write path.

Backends provide S3/GCS-like primitives: probe an object's metadata, create an
object (optionally under an existence precondition), upload a stream block by
block and finalize it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from blobfs.core.storage.location import Location


class ExistenceOption(str, Enum):
    """Existence precondition attached to a create request."""

    REQUIRE_ABSENT = "require_absent"
    NO_CONSTRAINT = "no_constraint"


@dataclass
class BlobMetadata:
    """Metadata for a stored blob."""

    location: Location
    size: int
    last_modified: datetime | None
    etag: str | None


@dataclass
class UploadHandle:
    """State of an upload started by :meth:`BlobStorageBackend.create`.

    Backends subclass this to keep whatever they need between blocks.
    """

    location: Location
    option: ExistenceOption


class BlobStorageBackend(ABC):
    """Abstract base class for blob storage backends.

    Implementations raise their native failure signals. Under
    ``ExistenceOption.REQUIRE_ABSENT`` the "already exists" refusal must be
    recognisable by :func:`blobfs.core.storage.errors.precondition_failed`.
    """

    @abstractmethod
    def get_metadata(self, location: Location) -> BlobMetadata | None:
        """Get metadata for a blob without downloading it.

        Args:
            location: Object to probe

        Returns:
            Blob metadata, or None if the blob doesn't exist
        """
        pass

    @abstractmethod
    def create(
        self, location: Location, content: bytes | None, option: ExistenceOption
    ) -> UploadHandle | None:
        """Create a blob.

        Args:
            location: Object to create
            content: Full payload for a single-request write, or None to start
                a block upload
            option: Existence precondition, enforced atomically by the backend

        Returns:
            None when ``content`` was written, otherwise the upload handle
        """
        pass

    @abstractmethod
    def append_block(self, handle: UploadHandle, data: bytes) -> None:
        """Upload the next block of a started upload."""
        pass

    @abstractmethod
    def finalize(self, handle: UploadHandle) -> None:
        """Complete an upload, making the blob visible with all its blocks."""
        pass

    @abstractmethod
    def abort(self, handle: UploadHandle) -> None:
        """Discard an upload that will not be finalized. Safe to call twice."""
        pass

    @abstractmethod
    def read(self, location: Location) -> bytes:
        """Retrieve a blob.

        Raises:
            BlobNotFoundError: If the blob doesn't exist
        """
        pass
