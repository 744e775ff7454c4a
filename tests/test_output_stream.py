"""Tests for the buffered output stream."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from blobfs.core.storage import (
    BackendError,
    BackendFailureError,
    BlobAlreadyExistsError,
    BlobOutputFile,
    BlobOutputStream,
    ExistenceOption,
    InvalidArgumentError,
    UploadHandle,
)

PAYLOAD = bytes(range(256)) * 4


def _chunks(data, sizes):
    """Split data into chunks of the given sizes, cycling through them."""
    offset = 0
    index = 0
    while offset < len(data):
        size = sizes[index % len(sizes)]
        yield data[offset : offset + size]
        offset += size
        index += 1


@pytest.fixture
def make_stream(location, mock_backend, memory_tracker):
    """Build a stream over the mock backend with a given block size."""

    def _make(block_size):
        handle = UploadHandle(location, ExistenceOption.NO_CONSTRAINT)
        return BlobOutputStream(
            location, mock_backend, handle, memory_tracker.new_local_context(), block_size
        )

    return _make


def _uploaded_blocks(backend):
    return [c.args[1] for c in backend.append_block.call_args_list]


class TestBlobOutputStreamRoundTrip:
    """Test that written bytes come back intact for any block size."""

    @pytest.mark.parametrize("block_size", [0, 1, 7, 100, len(PAYLOAD), 10 * len(PAYLOAD)])
    @pytest.mark.parametrize("chunk_sizes", [[1], [3, 50, 1], [len(PAYLOAD)], [0, 13]])
    def test_round_trip(self, location, fs_backend, block_size, chunk_sizes):
        output_file = BlobOutputFile(location, fs_backend, write_block_size=block_size)

        stream = output_file.create()
        for chunk in _chunks(PAYLOAD, [s or 1 for s in chunk_sizes]):
            stream.write(chunk)
            if 0 in chunk_sizes:
                stream.write(b"")
        stream.close()

        assert fs_backend.read(location) == PAYLOAD

    def test_accepts_bytes_like_objects(self, location, fs_backend):
        with BlobOutputFile(location, fs_backend, write_block_size=4).create() as stream:
            stream.write(b"ab")
            stream.write(bytearray(b"cd"))
            stream.write(memoryview(b"efgh")[1:])

        assert fs_backend.read(location) == b"abcdfgh"

    def test_write_returns_length_and_tell_counts(self, make_stream):
        stream = make_stream(4)

        assert stream.write(b"hello") == 5
        assert stream.write(b"") == 0
        assert stream.tell() == 5


class TestBlobOutputStreamBlocks:
    """Test how writes are batched into blocks."""

    def test_blocks_have_configured_size(self, make_stream, mock_backend):
        stream = make_stream(4)

        stream.write(b"ab")
        assert _uploaded_blocks(mock_backend) == []

        stream.write(b"cdefghij")
        assert _uploaded_blocks(mock_backend) == [b"abcd", b"efgh"]

        stream.write(b"k")
        stream.close()

        assert _uploaded_blocks(mock_backend) == [b"abcd", b"efgh", b"ijk"]
        mock_backend.finalize.assert_called_once()

    def test_exact_multiple_leaves_nothing_for_close(self, make_stream, mock_backend):
        stream = make_stream(3)
        stream.write(b"abcdef")
        stream.close()

        assert _uploaded_blocks(mock_backend) == [b"abc", b"def"]

    def test_zero_block_size_passes_writes_through(self, make_stream, mock_backend):
        stream = make_stream(0)

        stream.write(b"a")
        stream.write(b"")
        stream.write(b"bcdef")

        assert _uploaded_blocks(mock_backend) == [b"a", b"bcdef"]
        stream.close()
        assert _uploaded_blocks(mock_backend) == [b"a", b"bcdef"]

    def test_block_larger_than_content(self, make_stream, mock_backend):
        stream = make_stream(1024)
        stream.write(b"small")
        stream.close()

        assert _uploaded_blocks(mock_backend) == [b"small"]

    def test_empty_stream_finalizes_without_blocks(self, make_stream, mock_backend):
        make_stream(16).close()

        mock_backend.append_block.assert_not_called()
        mock_backend.finalize.assert_called_once()

    def test_flush_does_not_upload(self, make_stream, mock_backend):
        stream = make_stream(16)
        stream.write(b"abc")
        stream.flush()

        mock_backend.append_block.assert_not_called()

    def test_negative_block_size_rejected(self, make_stream):
        with pytest.raises(InvalidArgumentError):
            make_stream(-1)


class TestBlobOutputStreamClose:
    """Test close, abort and use after close."""

    def test_close_twice_finalizes_once(self, make_stream, mock_backend):
        stream = make_stream(4)
        stream.close()
        stream.close()

        mock_backend.finalize.assert_called_once()
        assert stream.closed

    def test_write_after_close(self, location, fs_backend):
        output_file = BlobOutputFile(location, fs_backend)
        stream = output_file.create()
        stream.write(b"final")
        stream.close()

        with pytest.raises(InvalidArgumentError, match="closed"):
            stream.write(b"more")

        assert fs_backend.read(location) == b"final"
        assert not stream.writable()

    def test_write_after_abort(self, make_stream):
        stream = make_stream(4)
        stream.abort()

        with pytest.raises(InvalidArgumentError):
            stream.write(b"data")

    def test_abort_discards_upload(self, location, fs_backend):
        stream = BlobOutputFile(location, fs_backend, write_block_size=2).create()
        stream.write(b"partial data")
        stream.abort()

        assert fs_backend.get_metadata(location) is None
        assert list((fs_backend.base_path / ".uploads").iterdir()) == []

    def test_context_manager_aborts_on_error(self, make_stream, mock_backend):
        with pytest.raises(RuntimeError):
            with make_stream(4) as stream:
                stream.write(b"abcdef")
                raise RuntimeError("caller failed")

        mock_backend.finalize.assert_not_called()
        mock_backend.abort.assert_called_once()

    def test_memory_released(self, make_stream, memory_tracker):
        stream = make_stream(8)
        stream.write(b"abc")
        assert memory_tracker.reserved_bytes == 3

        stream.write(b"defghij")
        assert memory_tracker.reserved_bytes == 2
        assert memory_tracker.peak_bytes == 3

        stream.close()
        assert memory_tracker.reserved_bytes == 0

    def test_memory_released_on_abort(self, make_stream, memory_tracker):
        stream = make_stream(8)
        stream.write(b"abc")
        stream.abort()

        assert memory_tracker.reserved_bytes == 0


class TestBlobOutputStreamFailures:
    """Test backend failures during writes and close."""

    def test_finalize_failure(self, make_stream, mock_backend):
        cause = BackendError("service unavailable", status_code=503)
        mock_backend.finalize.side_effect = cause
        stream = make_stream(4)
        stream.write(b"abc")

        with pytest.raises(BackendFailureError) as exc_info:
            stream.close()

        assert exc_info.value.cause is cause
        mock_backend.abort.assert_called_once()
        assert stream.closed

    def test_finalize_precondition_failure_is_backend_failure(self, make_stream, mock_backend):
        mock_backend.finalize.side_effect = BackendError("precondition failed", status_code=412)
        stream = make_stream(4)

        with pytest.raises(BackendFailureError) as exc_info:
            stream.close()

        assert not isinstance(exc_info.value, BlobAlreadyExistsError)
        assert exc_info.value.cause is mock_backend.finalize.side_effect
        mock_backend.abort.assert_called_once()

    def test_finalize_failure_leaves_no_new_blob(self, location, fs_backend):
        stream = BlobOutputFile(location, fs_backend, write_block_size=4).create()
        stream.write(b"content that never lands")

        with patch.object(fs_backend, "finalize", side_effect=OSError("disk full")):
            with pytest.raises(BackendFailureError):
                stream.close()

        assert fs_backend.get_metadata(location) is None

    def test_finalize_failure_keeps_previous_content(self, location, fs_backend):
        fs_backend.create(location, b"previous", ExistenceOption.NO_CONSTRAINT)
        stream = BlobOutputFile(location, fs_backend, write_block_size=4).create_or_overwrite()
        stream.write(b"replacement that fails")

        with patch.object(fs_backend, "finalize", side_effect=OSError("disk full")):
            with pytest.raises(BackendFailureError):
                stream.close()

        assert fs_backend.read(location) == b"previous"

    def test_block_failure_prevents_finalize(self, make_stream, mock_backend):
        mock_backend.append_block.side_effect = [None, ConnectionError("reset by peer")]
        stream = make_stream(2)

        with pytest.raises(BackendFailureError):
            stream.write(b"abcd")

        with pytest.raises(BackendFailureError):
            stream.write(b"ef")

        with pytest.raises(BackendFailureError):
            stream.close()

        mock_backend.finalize.assert_not_called()
        mock_backend.abort.assert_called_once()

    def test_failure_in_final_block_prevents_finalize(self, make_stream, mock_backend):
        mock_backend.append_block.side_effect = ConnectionError("reset by peer")
        stream = make_stream(16)
        stream.write(b"tail")

        with pytest.raises(BackendFailureError):
            stream.close()

        mock_backend.finalize.assert_not_called()
        mock_backend.abort.assert_called_once()

    def test_abort_failure_does_not_hide_original_error(self, make_stream, mock_backend):
        mock_backend.finalize.side_effect = BackendError("finalize failed", status_code=500)
        mock_backend.abort.side_effect = BackendError("abort failed", status_code=500)
        stream = make_stream(4)

        with pytest.raises(BackendFailureError, match="finalize failed"):
            stream.close()

    def test_explicit_abort_failure_is_reported(self, make_stream, mock_backend):
        mock_backend.abort.side_effect = ConnectionError("reset by peer")
        stream = make_stream(4)

        with pytest.raises(BackendFailureError):
            stream.abort()

        assert stream.closed

    def test_context_manager_keeps_caller_error_when_abort_fails(self, make_stream, mock_backend):
        mock_backend.abort.side_effect = ConnectionError("reset by peer")

        with pytest.raises(KeyError):
            with make_stream(4):
                raise KeyError("caller failed")
