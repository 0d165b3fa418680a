"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for the socket.

    HTTP/1.1 200 OK\r\n                         ← status line
    Content-Type: text/html; charset=utf-8\r\n
    Content-Length: 1043\r\n                    ← auto-added
    Date: Sun, 18 Oct 2026 10:00:00 GMT\r\n     ← auto-added
    Server: staticserver/1.0\r\n                ← auto-added
    \r\n
    <!doctype html>...                          ← body

Middleware works on HTTPResponse objects, not bytes: a compression stage
can swap the body, a header stage can add headers, and nothing reaches the
wire until the server calls to_bytes().

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Dict, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "staticserver/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be sent.

    Use ResponseBuilder or the helpers at the bottom of this module
    (not_found, unauthorized, redirect, ...) instead of building these by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def remove_header(self, name: str) -> None:
        """Remove a header regardless of the case it was set with."""
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]

    def to_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        include_body: bool = True,
    ) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are added when missing.
        include_body=False is used for HEAD: headers describe the body
        that a GET would have returned, but no body bytes follow.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        if include_body:
            return header_bytes + self.body
        return header_bytes


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("ETag", etag)
            .content_type("text/html; charset=utf-8")
            .body(content)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        301 Moved Permanently when permanent, 302 Found otherwise.
        """
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231), always in GMT.

        >>> format_http_date(datetime(2026, 1, 1, 12, tzinfo=timezone.utc))
        'Thu, 01 Jan 2026 12:00:00 GMT'
    """
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
# Error bodies are short plain-text lines, the way file servers usually
# answer; nothing here leaks filesystem paths to the client.
# =============================================================================

def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    """301/302 with a Location header and no body."""
    return ResponseBuilder().redirect(location, permanent).build()


def not_modified(headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
    """304 Not Modified; never carries a body."""
    return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).headers(headers or {}).build()


def unauthorized(realm: str = "Restricted", message: str = "Unauthorized.") -> HTTPResponse:
    """
    401 with a Basic challenge.

    401 means "I don't know who you are"; the WWW-Authenticate header
    tells the browser to prompt for a username and password.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.UNAUTHORIZED)
        .header("WWW-Authenticate", f'Basic realm="{realm}"')
        .text(message + "\n")
        .build())


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.FORBIDDEN).text(message + "\n").build()


def not_found(message: str = "404 page not found") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).text(message + "\n").build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the RFC 7231 Allow header."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text("Method Not Allowed\n")
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).text(message + "\n").build()
