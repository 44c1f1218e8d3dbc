"""Bounded pool of reusable request body buffers."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from oomph_loader.constants import MAX_POOLED_BUFFER_BYTES


class BufferPool:
    """Thread-safe pool of ``bytearray`` buffers.

    Buffers come back empty from :meth:`acquire`.  On :meth:`release`, a
    buffer that grew past ``max_retained_bytes`` is dropped so that one
    oversized request cannot pin memory for the life of the process.
    ``max_idle`` caps how many buffers are kept around at once.
    """

    def __init__(
        self,
        max_retained_bytes: int = MAX_POOLED_BUFFER_BYTES,
        max_idle: int = 8,
    ) -> None:
        if max_retained_bytes <= 0:
            raise ValueError("max_retained_bytes must be > 0")
        if max_idle <= 0:
            raise ValueError("max_idle must be > 0")
        self._max_retained_bytes = max_retained_bytes
        self._max_idle = max_idle
        self._idle: list[bytearray] = []
        self._lock = threading.Lock()

    @property
    def max_retained_bytes(self) -> int:
        return self._max_retained_bytes

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    def acquire(self) -> bytearray:
        """Take an empty buffer from the pool, or allocate a new one."""
        with self._lock:
            buf = self._idle.pop() if self._idle else None
        if buf is None:
            return bytearray()
        del buf[:]
        return buf

    def release(self, buf: bytearray) -> bool:
        """Return *buf* to the pool.

        Returns False when the buffer was dropped instead of pooled.
        """
        if len(buf) > self._max_retained_bytes:
            return False
        with self._lock:
            if len(self._idle) >= self._max_idle:
                return False
            if any(b is buf for b in self._idle):
                return True
            self._idle.append(buf)
        return True

    @contextmanager
    def borrow(self) -> Iterator[bytearray]:
        """Acquire a buffer for the duration of a ``with`` block."""
        buf = self.acquire()
        try:
            yield buf
        finally:
            self.release(buf)
