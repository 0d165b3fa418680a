"""
=============================================================================
CORE MODULE - Transport and concurrency
=============================================================================

    socket_server.py - listening socket and accept loop
    connection.py    - per-client socket wrapper with buffered reads
    thread_pool.py   - worker threads running one request at a time
    buffer_pool.py   - reusable compression buffers shared by the workers

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool
from .buffer_pool import BufferPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
    "BufferPool",
]
