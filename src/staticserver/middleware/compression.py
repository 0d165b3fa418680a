"""
=============================================================================
COMPRESSION MIDDLEWARE
=============================================================================

Innermost stage, enabled by `--append-header Name:Value`. On every
response it:

1. sets the configured static header;
2. when the client sent `Accept-Encoding: gzip`, compresses the body
   through a buffer borrowed from the shared BufferPool.

    Request:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /app.js HTTP/1.1                                          │
    │ Accept-Encoding: gzip, deflate, br                            │
    └───────────────────────────────────────────────────────────────┘

    Response:
    ┌───────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK                                               │
    │ Content-Encoding: gzip                                        │
    │ Content-Length: 1893           (compressed size)              │
    │ Vary: Accept-Encoding                                         │
    │ X-Frame-Options: DENY          (the appended header)          │
    └───────────────────────────────────────────────────────────────┘

=============================================================================
CONCURRENCY
=============================================================================

Many worker threads compress at once. Each one borrows its own buffer for
the duration of one response; the pool's context manager empties the
buffer and returns it even when compression raises, so two requests never
share bytes and the pool never holds more than its configured maximum.

=============================================================================
"""

import gzip
from typing import Optional, Tuple

from .base import Middleware, NextHandler
from ..core.buffer_pool import BufferPool
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


class CompressionMiddleware(Middleware):
    """
    Static header plus gzip.

        pool = BufferPool(max_size=32)
        pipeline.add(CompressionMiddleware(("X-Frame-Options", "DENY"), pool))
    """

    # Responses that must not carry a body
    _BODYLESS = {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}

    def __init__(
        self,
        extra_header: Optional[Tuple[str, str]],
        buffer_pool: BufferPool,
        level: int = 6,
    ):
        self.extra_header = extra_header
        self.buffer_pool = buffer_pool
        self.level = level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)

        if self.extra_header:
            response.set_header(*self.extra_header)

        if request.accepts_encoding("gzip") and self._should_compress(response):
            self._compress(response)
        return response

    def _should_compress(self, response: HTTPResponse) -> bool:
        if not response.body:
            return False
        if response.status in self._BODYLESS:
            return False
        # Never double-encode
        return not response.get_header("Content-Encoding")

    def compress(self, body: bytes) -> bytes:
        with self.buffer_pool.acquire() as buffer:
            with gzip.GzipFile(fileobj=buffer, mode="wb", compresslevel=self.level, mtime=0) as gz:
                gz.write(body)
            return buffer.getvalue()

    def _compress(self, response: HTTPResponse) -> None:
        response.body = self.compress(response.body)
        response.set_header("Content-Encoding", "gzip")
        response.set_header("Content-Length", str(len(response.body)))

        # The gzip bytes differ from the file, so only a weak validator still holds
        etag = response.get_header("ETag")
        if etag and not etag.startswith("W/"):
            response.set_header("ETag", f"W/{etag}")

        # Caches must keep gzip and identity variants apart
        vary = response.get_header("Vary")
        if "accept-encoding" not in vary.lower():
            response.set_header("Vary", f"{vary}, Accept-Encoding".lstrip(", "))
