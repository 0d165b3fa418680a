"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a static-asset server actually emits, with their reason
phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK                - asset, shell document, health     │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  3xx   │ 301 Moved Permanently - HTTPS promotion                   │
    │        │ 304 Not Modified      - conditional GET hit               │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request       - malformed request / traversal     │
    │        │ 401 Unauthorized      - basic-auth challenge              │
    │        │ 403 Forbidden         - unreadable file                   │
    │        │ 404 Not Found         - resolution miss                   │
    │        │ 405 Method Not Allowed - anything but GET/HEAD            │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Error    - handler crashed                   │
    │        │ 503 Service Unavailable - worker pool saturated           │
    └────────┴───────────────────────────────────────────────────────────┘

IntEnum is used so values compare equal to plain ints:

    HTTPStatus.NOT_FOUND == 404     # True
    f"{HTTPStatus.OK}"              # "200"

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes used by the server."""

    OK = 200
    NO_CONTENT = 204

    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    def __str__(self) -> str:
        return str(self.value)

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line ("Not Found")."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        return self >= 400


# Per RFC 7230, reason phrases are informational and may be ignored by clients.
_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
