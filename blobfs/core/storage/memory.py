"""Memory accounting for buffered writes.

Streams report how many bytes they hold; the tracker aggregates them. The
tracker only records usage, it never blocks a writer.
"""

from __future__ import annotations

import threading

from blobfs.core.storage.errors import InvalidArgumentError


class MemoryTracker:
    """Thread-safe aggregate of the bytes held by local contexts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reserved = 0
        self._peak = 0

    @property
    def reserved_bytes(self) -> int:
        with self._lock:
            return self._reserved

    @property
    def peak_bytes(self) -> int:
        with self._lock:
            return self._peak

    def new_local_context(self) -> LocalMemoryContext:
        """Create a context for a single owner (e.g. one output stream)."""
        return LocalMemoryContext(self)

    def _update(self, delta: int) -> None:
        with self._lock:
            self._reserved += delta
            self._peak = max(self._peak, self._reserved)


class LocalMemoryContext:
    """Usage of one owner, reported as an absolute byte count."""

    def __init__(self, tracker: MemoryTracker):
        self._tracker = tracker
        self._bytes = 0
        self._closed = False

    @property
    def bytes(self) -> int:
        return self._bytes

    def set_bytes(self, size: int) -> None:
        if size < 0:
            raise InvalidArgumentError(f"Memory size is negative: {size}")
        if self._closed:
            raise InvalidArgumentError("Memory context is closed")
        delta = size - self._bytes
        if delta:
            self._tracker._update(delta)
            self._bytes = size

    def close(self) -> None:
        """Release everything held by this context."""
        if self._closed:
            return
        self.set_bytes(0)
        self._closed = True
