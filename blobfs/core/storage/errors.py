"""Canonical error kinds for the write path and the backend signal translator.

Backends raise whatever their client library raises. The facade and the output
stream pass those signals through :func:`translate_error`, which maps every one
of them onto one of three kinds:

- :class:`BlobAlreadyExistsError` - exclusivity was violated
- :class:`InvalidArgumentError` - bad construction parameters or use after close
- :class:`BackendFailureError` - anything else the backend reported
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

from minio.error import S3Error

if TYPE_CHECKING:
    from blobfs.core.storage.location import Location

PRECONDITION_FAILED = HTTPStatus.PRECONDITION_FAILED.value


class BlobStorageError(Exception):
    """Base exception for blob storage errors."""

    def __init__(
        self,
        message: str,
        location: Location | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.location = location
        self.cause = cause


class BlobAlreadyExistsError(BlobStorageError):
    """Raised when trying to exclusively create a blob that already exists."""

    def __init__(self, location: Location, message: str | None = None):
        super().__init__(message or f"File {location} already exists", location=location)


class InvalidArgumentError(BlobStorageError, ValueError):
    """Raised for malformed parameters or use of a terminated stream."""

    pass


class BackendFailureError(BlobStorageError):
    """Raised when the storage backend reports an unexpected failure."""

    pass


class BlobStorageConnectionError(BackendFailureError):
    """Raised when connection to storage backend fails."""

    pass


class BlobNotFoundError(BlobStorageError):
    """Raised when a blob is not found."""

    pass


class BackendError(Exception):
    """Failure signal raised by local backends.

    Carries an HTTP-style status code so it can be told apart the same way a
    remote service response would be.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def precondition_failed(error: BaseException) -> bool:
    """Return True if ``error`` is a backend "precondition failed" signal."""
    if isinstance(error, S3Error):
        if error.code == "PreconditionFailed":
            return True
        response = getattr(error, "response", None)
        return getattr(response, "status", None) == PRECONDITION_FAILED
    return getattr(error, "status_code", None) == PRECONDITION_FAILED


def translate_error(
    error: BaseException, location: Location, action: str = "writing file"
) -> BlobStorageError:
    """Map a backend failure onto a canonical error.

    Never raises and never retries. The returned exception is meant to be raised
    by the caller, chained to ``error``.

    Args:
        error: The exception caught around a backend call
        location: Target of the failed operation
        action: Short description used in the message (e.g. "writing file")

    Returns:
        ``error`` itself if it is already canonical, otherwise a new
        :class:`BlobAlreadyExistsError` or :class:`BackendFailureError`
    """
    if isinstance(error, (BlobAlreadyExistsError, InvalidArgumentError, BackendFailureError)):
        return error

    # The conditional create was refused because the object is already there
    if precondition_failed(error):
        return BlobAlreadyExistsError(location)

    return BackendFailureError(f"Error {action}: {location}: {error}", location=location, cause=error)
