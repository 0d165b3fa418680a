"""
=============================================================================
BUFFER POOL
=============================================================================

Reusable in-memory buffers for response compression.

Compressing every response into a fresh BytesIO means one allocation (and
one growth sequence) per request. The pool keeps a bounded stack of
buffers and hands them out with a context manager:

    with pool.acquire() as buffer:
        with gzip.GzipFile(fileobj=buffer, mode="wb") as gz:
            gz.write(body)
        compressed = buffer.getvalue()
    # buffer is reset and back in the pool, even if gz.write() raised

=============================================================================
GUARANTEES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Exclusive   A buffer belongs to one request between acquire/release │
    │ Clean       Buffers are emptied before they go back in the pool     │
    │ Released    Release happens in `finally`, on every exit path        │
    │ Bounded     At most max_size idle buffers are kept; extras are      │
    │             dropped, and oversized buffers are never retained       │
    └─────────────────────────────────────────────────────────────────────┘

The pool is the only mutable object shared between worker threads on the
request path, so every access to the idle list holds the lock.

=============================================================================
"""

import io
import threading
from contextlib import contextmanager
from typing import Iterator, List


class BufferPool:
    """Thread-safe pool of io.BytesIO buffers."""

    def __init__(self, max_size: int = 32, max_buffer_bytes: int = 4 * 1024 * 1024):
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        self.max_size = max_size
        self.max_buffer_bytes = max_buffer_bytes
        self._idle: List[io.BytesIO] = []
        self._lock = threading.Lock()
        self.created = 0

    def _get(self) -> io.BytesIO:
        with self._lock:
            if self._idle:
                return self._idle.pop()
            self.created += 1
        return io.BytesIO()

    def _put(self, buffer: io.BytesIO) -> None:
        # Large buffers would pin their memory for the lifetime of the pool
        oversized = buffer.seek(0, io.SEEK_END) > self.max_buffer_bytes
        buffer.seek(0)
        buffer.truncate(0)
        if oversized:
            return
        with self._lock:
            if len(self._idle) < self.max_size:
                self._idle.append(buffer)

    @contextmanager
    def acquire(self) -> Iterator[io.BytesIO]:
        """Borrow an empty buffer for the duration of the `with` block."""
        buffer = self._get()
        try:
            yield buffer
        finally:
            self._put(buffer)

    @property
    def idle(self) -> int:
        """Number of buffers currently waiting in the pool."""
        with self._lock:
            return len(self._idle)
