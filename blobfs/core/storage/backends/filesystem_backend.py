"""Filesystem backend implementation for blob storage."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..blob import BlobMetadata, BlobStorageBackend, ExistenceOption, UploadHandle
from ..errors import PRECONDITION_FAILED, BackendError, BlobNotFoundError
from ..location import Location

logger = logging.getLogger(__name__)

UPLOADS_DIR = ".uploads"


@dataclass
class FilesystemUpload(UploadHandle):
    """Upload staged in a temporary file until it is finalized."""

    staging_path: Path | None = None
    target_path: Path | None = None
    placeholder: bool = False


class FilesystemBackend(BlobStorageBackend):
    """Filesystem implementation of blob storage backend.

    Blobs are stored at ``base_path/<bucket>/<path>``. Uploads are staged under
    ``base_path/.uploads`` and moved into place atomically on finalize.
    Exclusive creation relies on ``O_EXCL`` and ``link()``, which fail when the
    target already exists, so concurrent writers cannot both win.
    """

    def __init__(self, base_path: str | Path):
        """Initialize filesystem backend.

        Args:
            base_path: Base directory path for storing blobs
        """
        self._base_path = Path(base_path)
        self._uploads_path = self._base_path / UPLOADS_DIR
        self._uploads_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized filesystem backend at: {self._base_path}")

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _get_blob_path(self, location: Location) -> Path:
        """Get the full path for a blob file."""
        blob_path = (self._base_path / location.bucket / location.path).resolve()
        if not blob_path.is_relative_to(self._base_path.resolve()):
            raise BackendError(f"Location escapes storage root: {location}", status_code=400)
        if blob_path.is_relative_to(self._uploads_path.resolve()):
            raise BackendError(f"Location is inside the staging area: {location}", status_code=400)
        return blob_path

    def _new_staging_path(self) -> Path:
        return self._uploads_path / uuid.uuid4().hex

    def get_metadata(self, location: Location) -> BlobMetadata | None:
        """Stat the blob file."""
        blob_path = self._get_blob_path(location)
        try:
            stat = blob_path.stat()
        except FileNotFoundError:
            return None
        if not blob_path.is_file():
            return None

        return BlobMetadata(
            location=location,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, UTC),
            etag=str(stat.st_mtime_ns),
        )

    def create(
        self, location: Location, content: bytes | None, option: ExistenceOption
    ) -> FilesystemUpload | None:
        """Write ``content`` at once, or start a staged upload."""
        blob_path = self._get_blob_path(location)
        blob_path.parent.mkdir(parents=True, exist_ok=True)

        if content is not None:
            staging_path = self._new_staging_path()
            staging_path.write_bytes(content)
            try:
                self._publish(staging_path, blob_path, option, location)
            finally:
                staging_path.unlink(missing_ok=True)
            logger.info(f"Stored blob: {location} ({len(content)} bytes)")
            return None

        placeholder = False
        if option is ExistenceOption.REQUIRE_ABSENT:
            # Claim the name now; finalize replaces the empty placeholder
            self._create_placeholder(blob_path, location)
            placeholder = True

        staging_path = self._new_staging_path()
        staging_path.touch()
        return FilesystemUpload(
            location=location,
            option=option,
            staging_path=staging_path,
            target_path=blob_path,
            placeholder=placeholder,
        )

    def _create_placeholder(self, blob_path: Path, location: Location) -> None:
        try:
            fd = os.open(blob_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise BackendError(
                f"Precondition failed: {location} already exists", status_code=PRECONDITION_FAILED
            )
        os.close(fd)

    def _publish(
        self, staging_path: Path, blob_path: Path, option: ExistenceOption, location: Location
    ) -> None:
        if option is ExistenceOption.NO_CONSTRAINT:
            os.replace(staging_path, blob_path)
            return
        try:
            os.link(staging_path, blob_path)
        except FileExistsError:
            raise BackendError(
                f"Precondition failed: {location} already exists", status_code=PRECONDITION_FAILED
            )

    def append_block(self, handle: FilesystemUpload, data: bytes) -> None:
        """Append a block to the staging file."""
        with open(handle.staging_path, "ab") as f:
            f.write(data)

    def finalize(self, handle: FilesystemUpload) -> None:
        """Move the staging file over the blob path."""
        os.replace(handle.staging_path, handle.target_path)
        handle.placeholder = False
        logger.info(f"Stored blob: {handle.location} ({handle.target_path.stat().st_size} bytes)")

    def abort(self, handle: FilesystemUpload) -> None:
        """Remove the staging file and our placeholder, if still empty."""
        handle.staging_path.unlink(missing_ok=True)
        if handle.placeholder:
            try:
                if handle.target_path.stat().st_size == 0:
                    handle.target_path.unlink()
            except FileNotFoundError:
                pass
            handle.placeholder = False

    def read(self, location: Location) -> bytes:
        """Retrieve a blob from the filesystem."""
        blob_path = self._get_blob_path(location)
        if not blob_path.is_file():
            raise BlobNotFoundError(f"Blob not found: {location}", location=location)
        return blob_path.read_bytes()
