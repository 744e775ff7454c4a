"""Buffered output stream that uploads a blob block by block."""

from __future__ import annotations

import logging

from blobfs.core.storage.blob import BlobStorageBackend, UploadHandle
from blobfs.core.storage.errors import (
    BackendFailureError,
    BlobStorageError,
    InvalidArgumentError,
    translate_error,
)
from blobfs.core.storage.location import Location
from blobfs.core.storage.memory import LocalMemoryContext

logger = logging.getLogger(__name__)


class BlobOutputStream:
    """Write-only stream for a single upload.

    Written bytes are collected into blocks of ``write_block_size`` bytes, and
    each full block is handed to the backend as one partial upload. A block size
    of 0 disables batching, so every write goes straight to the backend.
    ``close()`` uploads what is left and finalizes the blob.

    Use as a context manager to finalize on success and abort on error::

        with output_file.create() as stream:
            stream.write(b"...")
    """

    def __init__(
        self,
        location: Location,
        backend: BlobStorageBackend,
        handle: UploadHandle,
        memory_context: LocalMemoryContext,
        write_block_size: int,
    ):
        if write_block_size < 0:
            raise InvalidArgumentError("write_block_size is negative", location=location)

        self._location = location
        self._backend = backend
        self._handle = handle
        self._memory = memory_context
        self._block_size = write_block_size
        self._buffer = bytearray()
        self._position = 0
        self._closed = False
        self._failed = False

    @property
    def location(self) -> Location:
        return self._location

    @property
    def closed(self) -> bool:
        return self._closed

    def writable(self) -> bool:
        return not self._closed

    def tell(self) -> int:
        """Number of bytes accepted so far."""
        return self._position

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write bytes to the stream.

        Returns:
            Number of bytes written (always ``len(data)``)

        Raises:
            InvalidArgumentError: If the stream is closed or aborted
            BackendFailureError: If a block upload failed now or earlier
        """
        self._check_open()
        view = memoryview(data).cast("B")
        size = len(view)

        if self._block_size == 0:
            if size:
                self._upload_block(view)
        else:
            self._buffered_write(view)
            self._memory.set_bytes(len(self._buffer))

        self._position += size
        return size

    def _buffered_write(self, view: memoryview) -> None:
        offset = 0
        if self._buffer:
            # Top up the pending block first
            offset = min(len(view), self._block_size - len(self._buffer))
            self._buffer += view[:offset]
            if len(self._buffer) == self._block_size:
                self._upload_block(self._buffer)
                self._buffer.clear()

        while len(view) - offset >= self._block_size:
            self._upload_block(view[offset : offset + self._block_size])
            offset += self._block_size

        self._buffer += view[offset:]

    def flush(self) -> None:
        """No-op: blocks are uploaded only when full, or on close."""
        self._check_open()

    def close(self) -> None:
        """Upload buffered bytes and finalize the blob.

        Calling close again is a no-op. If finalizing fails the upload is
        aborted, so the blob never shows up with truncated content.

        Raises:
            BackendFailureError: If uploading or finalizing failed
        """
        if self._closed:
            return
        self._closed = True

        try:
            if self._failed:
                raise BackendFailureError(
                    f"Not finalizing {self._location}: an earlier block upload failed",
                    location=self._location,
                )
            if self._buffer:
                self._upload_block(self._buffer)
            try:
                self._backend.finalize(self._handle)
            except Exception as e:
                raise self._finalize_failure(e) from e
        except BlobStorageError:
            self._abort_upload()
            raise
        finally:
            self._release_buffer()

        logger.info(f"Finalized {self._location} ({self._position} bytes)")

    def abort(self) -> None:
        """Abandon the upload without finalizing it.

        Raises:
            BackendFailureError: If the backend could not discard the upload
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._backend.abort(self._handle)
        except Exception as e:
            raise translate_error(e, self._location, "aborting upload") from e
        finally:
            self._release_buffer()
        logger.info(f"Aborted upload of {self._location}")

    def _upload_block(self, block: bytes | bytearray | memoryview) -> None:
        try:
            self._backend.append_block(self._handle, bytes(block))
        except Exception as e:
            self._failed = True
            raise translate_error(e, self._location, "writing file") from e
        logger.debug(f"Uploaded block of {len(block)} bytes to {self._location}")

    def _finalize_failure(self, error: Exception) -> BackendFailureError:
        # Exclusivity is settled at create; finalize can only fail as a backend failure
        translated = translate_error(error, self._location, "finalizing file")
        if isinstance(translated, BackendFailureError):
            return translated
        return BackendFailureError(
            f"Error finalizing file: {self._location}: {error}",
            location=self._location,
            cause=error,
        )

    def _abort_upload(self) -> None:
        try:
            self._backend.abort(self._handle)
        except Exception as e:
            # Secondary to the error being raised
            logger.warning(f"Failed to abort upload of {self._location}: {e}")

    def _release_buffer(self) -> None:
        self._buffer = bytearray()
        self._memory.close()

    def _check_open(self) -> None:
        if self._closed:
            raise InvalidArgumentError(
                f"Output stream for {self._location} is closed", location=self._location
            )
        if self._failed:
            raise BackendFailureError(
                f"Output stream for {self._location} failed on an earlier write",
                location=self._location,
            )

    def __enter__(self) -> BlobOutputStream:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.close()
        elif not self._closed:
            # Let the caller's exception propagate, not an abort failure
            self._closed = True
            self._abort_upload()
            self._release_buffer()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"BlobOutputStream({self._location}, {state})"
