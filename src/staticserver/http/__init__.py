"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 layer: raw bytes in, HTTPRequest out; HTTPResponse in, raw
bytes out; plus the router that dispatches requests to top-level handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  request.py      - RequestParser, HTTPRequest, HTTPParseError       │
    │  response.py     - HTTPResponse, ResponseBuilder, helpers           │
    │  router.py       - Router (exact routes + subtree mounts)           │
    │  status_codes.py - HTTPStatus enum                                  │
    │  mime_types.py   - extension → Content-Type                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    redirect,           # 301/302 Redirect
    not_modified,       # 304 Not Modified
    unauthorized,       # 401 Unauthorized (Basic challenge)
    forbidden,          # 403 Forbidden
    not_found,          # 404 Not Found
    method_not_allowed, # 405 Method Not Allowed
    internal_error,     # 500 Internal Server Error
)
from .router import Router, Route, Mount
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "redirect",
    "not_modified",
    "unauthorized",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "Router",
    "Route",
    "Mount",
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
