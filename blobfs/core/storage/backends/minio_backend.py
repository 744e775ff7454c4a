"""MinIO backend implementation for blob storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from minio import Minio
from minio.datatypes import Part
from minio.error import S3Error

from blobfs.core.storage.blob import (
    BlobMetadata,
    BlobStorageBackend,
    ExistenceOption,
    UploadHandle,
)
from blobfs.core.storage.errors import BlobNotFoundError, BlobStorageConnectionError
from blobfs.core.storage.location import Location

logger = logging.getLogger(__name__)

# S3 rejects multipart uploads whose non-final parts are smaller than this
MIN_PART_SIZE = 5 * 1024 * 1024

CONTENT_TYPE = "application/octet-stream"
NOT_FOUND_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}


@dataclass
class MinIOUpload(UploadHandle):
    """Multipart upload state. The multipart upload starts with the first part."""

    object_name: str = ""
    upload_id: str | None = None
    parts: list[Part] = field(default_factory=list)
    pending: bytearray = field(default_factory=bytearray)
    placeholder: bool = False
    placeholder_etag: str | None = None


class MinIOBackend(BlobStorageBackend):
    """MinIO (S3 compatible) implementation of blob storage backend.

    Exclusive creates are sent with ``If-None-Match: *`` and the server answers
    ``412 Precondition Failed`` when the object exists. A streamed exclusive
    create first claims the key with an empty conditional put, then uploads the
    content as a multipart upload that replaces it on finalize.

    Block uploads use the client's low-level multipart calls. Blocks are
    coalesced until they reach the S3 minimum part size, so each open upload
    holds up to ``MIN_PART_SIZE`` bytes in ``MinIOUpload.pending``. That buffer
    is not reported to the stream's memory context, even with a block size
    of 0.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = True,
        region: str | None = None,
        bucket: str | None = None,
        prefix: str | None = None,
    ):
        """Initialize MinIO backend.

        Args:
            endpoint: MinIO server endpoint (e.g., 'localhost:9000')
            access_key: Access key (user ID)
            secret_key: Secret key (password)
            secure: Use HTTPS if True
            region: Optional region name
            bucket: Optional bucket to create if it does not exist yet
            prefix: Optional prefix to prepend to all object names
        """
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

        try:
            self._client = Minio(
                endpoint=endpoint,
                access_key=access_key,
                secret_key=secret_key,
                secure=secure,
                region=region,
            )

            if bucket:
                if not self._client.bucket_exists(bucket):
                    self._client.make_bucket(bucket, location=region)
                    logger.info(f"Created bucket: {bucket}")
                else:
                    logger.info(f"Using existing bucket: {bucket}")

        except S3Error as e:
            raise BlobStorageConnectionError(f"Failed to connect to MinIO: {e}", cause=e)

    def _object_name(self, location: Location) -> str:
        """Prepend prefix to the location path."""
        return f"{self._prefix}{location.path}"

    @staticmethod
    def _headers(option: ExistenceOption) -> dict[str, str]:
        headers = {"Content-Type": CONTENT_TYPE}
        if option is ExistenceOption.REQUIRE_ABSENT:
            headers["If-None-Match"] = "*"
        return headers

    def get_metadata(self, location: Location) -> BlobMetadata | None:
        """Stat the object."""
        try:
            stat = self._client.stat_object(location.bucket, self._object_name(location))
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                return None
            raise

        return BlobMetadata(
            location=location,
            size=stat.size,
            last_modified=stat.last_modified,
            etag=stat.etag,
        )

    def create(
        self, location: Location, content: bytes | None, option: ExistenceOption
    ) -> MinIOUpload | None:
        """Put ``content`` in one request, or start a multipart upload."""
        object_name = self._object_name(location)

        if content is not None:
            result = self._client._put_object(
                location.bucket, object_name, content, self._headers(option)
            )
            logger.info(f"Stored blob: {location} (etag: {result.etag})")
            return None

        placeholder = False
        placeholder_etag = None
        if option is ExistenceOption.REQUIRE_ABSENT:
            result = self._client._put_object(
                location.bucket, object_name, b"", self._headers(option)
            )
            placeholder = True
            placeholder_etag = result.etag

        return MinIOUpload(
            location=location,
            option=option,
            object_name=object_name,
            placeholder=placeholder,
            placeholder_etag=placeholder_etag,
        )

    def append_block(self, handle: MinIOUpload, data: bytes) -> None:
        """Queue a block; upload a part once enough bytes are pending."""
        handle.pending += data
        if len(handle.pending) >= MIN_PART_SIZE:
            self._upload_part(handle)

    def _upload_part(self, handle: MinIOUpload) -> None:
        bucket = handle.location.bucket
        if handle.upload_id is None:
            handle.upload_id = self._client._create_multipart_upload(
                bucket, handle.object_name, {"Content-Type": CONTENT_TYPE}
            )

        part_number = len(handle.parts) + 1
        etag = self._client._upload_part(
            bucket,
            handle.object_name,
            bytes(handle.pending),
            None,
            handle.upload_id,
            part_number,
        )
        handle.parts.append(Part(part_number, etag))
        handle.pending = bytearray()
        logger.debug(f"Uploaded part {part_number} of {handle.location}")

    def finalize(self, handle: MinIOUpload) -> None:
        """Complete the multipart upload, or put a small object directly."""
        bucket = handle.location.bucket
        if handle.upload_id is None:
            # Never reached a full part; the key is ours already if exclusive
            result = self._client._put_object(
                bucket,
                handle.object_name,
                bytes(handle.pending),
                self._headers(ExistenceOption.NO_CONSTRAINT),
            )
        else:
            if handle.pending:
                self._upload_part(handle)
            result = self._client._complete_multipart_upload(
                bucket, handle.object_name, handle.upload_id, handle.parts
            )
        handle.pending = bytearray()
        handle.placeholder = False
        logger.info(f"Stored blob: {handle.location} (etag: {result.etag})")

    def abort(self, handle: MinIOUpload) -> None:
        """Abort the multipart upload and remove the placeholder.

        The placeholder is only removed while it is still the object we put.
        Another writer may have replaced it with an unconditional upload.
        """
        bucket = handle.location.bucket
        if handle.upload_id is not None:
            self._client._abort_multipart_upload(bucket, handle.object_name, handle.upload_id)
            handle.upload_id = None
        if handle.placeholder:
            if self._is_placeholder(handle):
                self._client.remove_object(bucket, handle.object_name)
            else:
                logger.info(f"Keeping {handle.location}: replaced by another writer")
            handle.placeholder = False
        handle.pending = bytearray()

    def _is_placeholder(self, handle: MinIOUpload) -> bool:
        try:
            stat = self._client.stat_object(handle.location.bucket, handle.object_name)
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                return False
            raise
        return _strip_etag(stat.etag) == _strip_etag(handle.placeholder_etag)

    def read(self, location: Location) -> bytes:
        """Retrieve a blob from MinIO."""
        try:
            response = self._client.get_object(location.bucket, self._object_name(location))
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                raise BlobNotFoundError(f"Blob not found: {location}", location=location)
            raise

        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()


def _strip_etag(etag: str | None) -> str | None:
    return etag.strip('"') if etag else etag
