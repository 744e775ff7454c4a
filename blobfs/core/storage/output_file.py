"""Output file facade: create, overwrite or exclusively create a blob."""

from __future__ import annotations

import logging

from blobfs.core.storage.blob import BlobStorageBackend, ExistenceOption
from blobfs.core.storage.errors import (
    BlobAlreadyExistsError,
    InvalidArgumentError,
    translate_error,
)
from blobfs.core.storage.location import Location
from blobfs.core.storage.memory import MemoryTracker
from blobfs.core.storage.output_stream import BlobOutputStream

logger = logging.getLogger(__name__)

DEFAULT_WRITE_BLOCK_SIZE = 16 * 1024 * 1024


class BlobOutputFile:
    """Writable handle on a single blob location.

    Exclusive creation probes the backend first and fails fast when the blob is
    already there. The probe is only an optimization: the create request itself
    carries ``ExistenceOption.REQUIRE_ABSENT``, so a writer that wins the race
    in between is still detected by the backend and reported the same way.
    """

    def __init__(
        self,
        location: Location,
        backend: BlobStorageBackend,
        write_block_size: int = DEFAULT_WRITE_BLOCK_SIZE,
    ):
        """Initialize output file.

        Args:
            location: Blob to write
            backend: Storage backend implementation
            write_block_size: Bytes buffered before a block is uploaded (0 = no buffering)

        Raises:
            InvalidArgumentError: If location or backend is missing, or the block
                size is negative
        """
        if location is None:
            raise InvalidArgumentError("location is None")
        if backend is None:
            raise InvalidArgumentError("backend is None", location=location)
        if write_block_size < 0:
            raise InvalidArgumentError("write_block_size is negative", location=location)

        self._location = location
        self._backend = backend
        self._write_block_size = write_block_size

    @property
    def location(self) -> Location:
        """The location this file writes to."""
        return self._location

    @property
    def write_block_size(self) -> int:
        return self._write_block_size

    def create(self, memory_tracker: MemoryTracker | None = None) -> BlobOutputStream:
        """Open a stream for a new blob.

        Raises:
            BlobAlreadyExistsError: If the blob already exists
            BackendFailureError: If the backend fails
        """
        return self._create_output_stream(memory_tracker, overwrite=False)

    def create_or_overwrite(self, memory_tracker: MemoryTracker | None = None) -> BlobOutputStream:
        """Open a stream that replaces the blob if it exists.

        Raises:
            BackendFailureError: If the backend fails
        """
        return self._create_output_stream(memory_tracker, overwrite=True)

    def create_exclusive(self, content: bytes | bytearray | memoryview) -> None:
        """Write ``content`` as a new blob in a single request.

        Raises:
            BlobAlreadyExistsError: If the blob already exists
            InvalidArgumentError: If ``content`` is not bytes-like
            BackendFailureError: If the backend fails
        """
        if not isinstance(content, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                f"content must be bytes-like, not {type(content).__name__}",
                location=self._location,
            )
        payload = bytes(content)

        try:
            self._check_absent()
            self._backend.create(self._location, payload, ExistenceOption.REQUIRE_ABSENT)
        except BlobAlreadyExistsError:
            raise
        except Exception as e:
            raise translate_error(e, self._location, "writing file") from e

        logger.info(f"Created {self._location} ({len(payload)} bytes)")

    def _create_output_stream(
        self, memory_tracker: MemoryTracker | None, overwrite: bool
    ) -> BlobOutputStream:
        try:
            option = ExistenceOption.NO_CONSTRAINT
            if not overwrite:
                self._check_absent()
                option = ExistenceOption.REQUIRE_ABSENT
            handle = self._backend.create(self._location, None, option)
        except BlobAlreadyExistsError:
            raise
        except Exception as e:
            raise translate_error(e, self._location, "writing file") from e

        tracker = memory_tracker if memory_tracker is not None else MemoryTracker()
        logger.debug(f"Opened output stream for {self._location} ({option.value})")
        return BlobOutputStream(
            self._location,
            self._backend,
            handle,
            tracker.new_local_context(),
            self._write_block_size,
        )

    def _check_absent(self) -> None:
        if self._backend.get_metadata(self._location) is not None:
            raise BlobAlreadyExistsError(self._location)

    def __repr__(self) -> str:
        return f"BlobOutputFile({self._location})"
