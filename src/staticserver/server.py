"""
=============================================================================
MAIN HTTP SERVER
=============================================================================

Ties the transport to the application handler built by app.py.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           HTTPServer                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   SocketServer ── accept ──► ThreadPool.submit(_process_connection) │
    │                                       │                             │
    │                                       ▼  (worker thread)            │
    │          Connection.read_request ─► RequestParser ─► handler        │
    │                  ▲                                     │            │
    │                  └──────── keep-alive ◄── send ◄───────┘            │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts the TCP connection
    2. The connection is queued in the ThreadPool (503 when the queue is full)
    3. A worker reads and parses one request (400/413/505 on bad input)
    4. handler(request): Router → /health or the middleware pipeline
    5. The response is serialized; HEAD drops the body
    6. Keep-alive: back to 3, otherwise close

A handler exception becomes a 500 for that request; the worker and the
connection loop carry on.

=============================================================================
"""

import logging
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool, RequestTooLarge
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseBuilder, HTTPStatus,
)


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("staticserver").setLevel(getattr(logging, level.upper(), logging.INFO))


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a single request handler.

        context = build_context(config)
        server = HTTPServer(config, create_app(context).handle)
        server.run()            # blocks until SIGTERM / Ctrl+C / stop()
    """

    def __init__(self, config: ServerConfig, handler: Handler):
        self.config = config
        self._handler = handler

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._running = False

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def run(self):
        """Start the server (blocking)."""
        self._setup_logging()
        self._running = True
        self._thread_pool.start()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Ask a running server to stop; run() returns once it has."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        setup_logging(self.config.log_level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread for every new connection."""
        submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs in a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.debug(f"[{conn.id}] Bad request: {e}")
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = conn.state.PROCESSING
                    response = self._dispatch(conn, request)

                    keep_alive = (
                        request.is_keep_alive
                        and self.config.keep_alive
                        and response.get_header("Connection").lower() != "close"
                    )
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    response_bytes = response.to_bytes(
                        self.config.server_name,
                        include_body=request.method != "HEAD",
                    )
                    if not conn.send_response(response_bytes):
                        break

                    if not keep_alive:
                        break
                    conn.set_keep_alive()

                except RequestTooLarge as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.path}: {e}")
            return (ResponseBuilder()
                .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                .text("Internal Server Error\n")
                .close_connection()
                .build())

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Error response for failures before the handler runs."""
        response = (ResponseBuilder()
            .status(status)
            .text(message + "\n")
            .close_connection()
            .build())
        conn.send_response(response.to_bytes(self.config.server_name))
