"""
=============================================================================
FILE SERVING HANDLER
=============================================================================

Terminal handler of the pipeline: turns a request path into file bytes.

    GET /app/settings
        │
        ▼
    FallbackFileSystem.open("/app/settings")
        │
        ├── Found(/srv/http/app/settings/index.html)   → 200 + file
        ├── Found(/srv/http/index.html)  (fallback)    → 200 + file
        └── NotFound                                   → 404

The handler itself never joins request paths to disk paths; that, and
keeping every match inside the base directory, is the filesystem's job.

=============================================================================
CACHING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ First request      200, ETag: "1760000000-5120", Last-Modified: ... │
    │ Revalidation       If-None-Match: "1760000000-5120"      → 304      │
    │                    If-Modified-Since: <not older>        → 304      │
    └─────────────────────────────────────────────────────────────────────┘

If-None-Match takes precedence over If-Modified-Since (RFC 7232 §6).

=============================================================================
"""

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Optional

from ..filesystem import FallbackFileSystem
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    format_http_date, forbidden, internal_error, method_not_allowed,
    not_found, not_modified,
)
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


ALLOWED_METHODS = ["GET", "HEAD"]


class FileServingHandler:
    """
    Serves files resolved through a FallbackFileSystem.

        fs = FallbackFileSystem("/srv/http", FallbackRule.parse("/index.html"))
        handler = FileServingHandler(fs, cache_max_age=3600)
        response = handler.handle(request)

    HEAD is answered like GET; the server drops the body when sending.
    """

    def __init__(self, filesystem: FallbackFileSystem, cache_max_age: int = 3600):
        self.filesystem = filesystem
        self.cache_max_age = cache_max_age

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in ALLOWED_METHODS:
            return method_not_allowed(ALLOWED_METHODS)

        asset = self.filesystem.open(request.path)
        if not asset.found:
            return not_found()

        if asset.via_fallback:
            logger.debug(f"Fallback {request.path} → {asset.path}")
        return self._serve_file(asset.path, request)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        try:
            stat = path.stat()
            mtime = datetime.fromtimestamp(int(stat.st_mtime), tz=timezone.utc)
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'
            validators = {
                "ETag": etag,
                "Last-Modified": format_http_date(mtime),
            }

            if self._is_not_modified(request, etag, mtime):
                return not_modified(validators)

            content = path.read_bytes()
        except PermissionError:
            return forbidden("403 Forbidden")
        except OSError as e:
            logger.error(f"Error serving file {path}: {e}")
            return internal_error()

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type(get_content_type(path))
            .headers(validators)
            .cache(self.cache_max_age)
            .body(content)
            .build())

    def _is_not_modified(self, request: HTTPRequest, etag: str, mtime: datetime) -> bool:
        if_none_match = request.get_header("If-None-Match")
        if if_none_match:
            candidates = [tag.strip() for tag in if_none_match.split(",")]
            # Weak comparison: W/"x" matches "x"
            return "*" in candidates or etag in (c.removeprefix("W/") for c in candidates)

        since = self._parse_http_date(request.get_header("If-Modified-Since"))
        return since is not None and mtime <= since

    @staticmethod
    def _parse_http_date(value: str) -> Optional[datetime]:
        if not value:
            return None
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
