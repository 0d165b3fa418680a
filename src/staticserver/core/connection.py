"""
=============================================================================
CONNECTION WRAPPER
=============================================================================

Wraps an accepted client socket with HTTP-aware buffered reads, timeouts
and a small state machine:

    NEW → READING → PROCESSING → WRITING → KEEP_ALIVE ─┐
              ▲                                         │
              └─────────────────────────────────────────┘
                                   (timeout / close) → CLOSING → CLOSED

TCP is a byte stream: one recv() may return half a request or a request
and a half. read_request() keeps whatever follows the current request in
an internal buffer for the next keep-alive round.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(Exception):
    """The client sent more than max_request_size bytes for one request."""


@dataclass
class Connection:
    """One client TCP connection."""

    socket: socket.socket
    address: tuple[str, int]
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0         # first request
    keep_alive_timeout: float = 5.0         # subsequent requests
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (headers + Content-Length body).

        Returns None when the client closed the connection or went idle
        on keep-alive.

        Raises:
            TimeoutError: the first request did not arrive in time.
            RequestTooLarge: the request exceeded max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            if body_start + content_length > self.max_request_size:
                raise RequestTooLarge(f"Request too large: {body_start + content_length} bytes")

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    def send_response(self, data: bytes) -> bool:
        """sendall() the serialized response; False when the peer is gone."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """Half-close, drain briefly, then close the socket."""
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING
        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass
        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
