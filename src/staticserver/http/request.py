"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest.

    GET /app/users/42?tab=1 HTTP/1.1\r\n       ← request line
    Host: example.com\r\n                      ← headers
    Accept-Encoding: gzip\r\n
    \r\n                                       ← end of headers
                                               ← (body, usually empty)

A static server mostly sees GET and HEAD, but the parser accepts every
standard method so the file handler can answer 405 instead of the parser
answering 400.

=============================================================================
PATH SAFETY
=============================================================================

The path is URL-decoded here, then checked for parent-directory segments.
Anything like /a/../../etc/passwd (or its %2e%2e encoding) is rejected with
400 before any middleware or filesystem code sees it. A dot-dot inside a
file name ("release..notes.txt") is a legal name and is kept.

Control characters (NUL, CR, LF, ...) are rejected the same way, in the
raw target and in the decoded path, so "%0d%0a" can never reach a
response header such as the HTTPS redirect's Location.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import urlsplit, unquote
import re


CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to send back:

        400 Bad Request                - Malformed syntax, path traversal
        405 Method Not Allowed         - Unknown method
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Headers are stored with lowercase names (RFC 7230 makes them
    case-insensitive). `path` is decoded and never carries the query
    string. `raw_path` and `query` keep the target exactly as it arrived
    on the wire, still percent-encoded, so redirects can rebuild the
    original URL without decoding anything into a header.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query: str = ""
    raw_path: str = ""
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def request_uri(self) -> str:
        """Path plus query string, as the client sent it (still encoded)."""
        path = self.raw_path or self.path
        if self.query:
            return f"{path}?{self.query}"
        return path

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection open unless told "close";
        HTTP/1.0 closes it unless told "keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def accepts_encoding(self, encoding: str) -> bool:
        """
        True when Accept-Encoding allows `encoding`.

            "gzip, br"          → gzip yes
            "gzip;q=0, br"      → gzip no
            "*;q=0.5"           → gzip yes (wildcard)
            "br, *;q=0"         → gzip no

        An explicit entry wins over "*".
        """
        weights: Dict[str, float] = {}
        for item in self.headers.get("accept-encoding", "").split(","):
            token, _, params = item.partition(";")
            token = token.strip().lower()
            if not token:
                continue
            weight = 1.0
            for param in params.split(";"):
                name, _, value = param.partition("=")
                if name.strip().lower() == "q":
                    try:
                        weight = float(value)
                    except ValueError:
                        weight = 0.0
            weights[token] = weight

        weight = weights.get(encoding.lower(), weights.get("*", 0.0))
        return weight > 0


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        1. Size check              → 413
        2. Split headers / body on \\r\\n\\r\\n
        3. Request line            → 400 / 405 / 505
        4. Headers (lowercased, duplicates comma-joined)
        5. Body by Content-Length
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, raw_path, path, query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query=query,
            raw_path=raw_path,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str, str, str]:
        """
        METHOD SP REQUEST-URI SP HTTP-VERSION

        Returns (method, raw path, decoded path, raw query, version).
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        parsed = urlsplit(uri)
        path = unquote(parsed.path) or "/"
        if not path.startswith("/"):
            raise HTTPParseError(f"Invalid path: {path!r}")

        # Reject parent-directory segments; "\" counts as a separator too
        if ".." in path.replace("\\", "/").split("/"):
            raise HTTPParseError("Invalid path: contains '..' segment")

        # NUL, CR, LF and the other control characters never name a file
        if CONTROL_CHARS.search(path) or CONTROL_CHARS.search(uri):
            raise HTTPParseError("Invalid path: contains control characters")

        return method, parsed.path or "/", path, parsed.query, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines into a dict with lowercase names.

        Obsolete line folding is joined onto the previous header, repeated
        headers are comma-joined, malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """One-shot helper around RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
