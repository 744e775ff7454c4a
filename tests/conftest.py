from __future__ import annotations

from unittest.mock import Mock

import pytest

from blobfs.core.storage import (
    BlobStorageBackend,
    ExistenceOption,
    Location,
    MemoryTracker,
    UploadHandle,
)
from blobfs.core.storage.backends import FilesystemBackend


@pytest.fixture
def location():
    """A target location used across write path tests."""
    return Location(bucket="test-bucket", path="reports/2024/summary.bin")


@pytest.fixture
def fs_backend(tmp_path):
    """Create a filesystem backend rooted in a temporary directory."""
    return FilesystemBackend(base_path=tmp_path / "store")


@pytest.fixture
def memory_tracker():
    return MemoryTracker()


@pytest.fixture
def mock_backend(location):
    """Mock backend where the target is absent and every call succeeds."""
    backend = Mock(spec=BlobStorageBackend)
    backend.get_metadata.return_value = None
    backend.create.return_value = UploadHandle(location, ExistenceOption.NO_CONSTRAINT)
    return backend
