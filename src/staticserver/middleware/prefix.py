"""
Mount-prefix stripping: with `--context doc` the site lives under /doc/ and
the stages below see paths relative to it.

    /doc/app.js → /app.js
    /doc        → /
    /docs/x     → 404 (not under the prefix)
"""

from dataclasses import replace

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, not_found


class StripPrefixMiddleware(Middleware):

    def __init__(self, prefix: str):
        self.prefix = "/" + prefix.strip("/")

    def strip(self, path: str):
        """Path relative to the prefix, or None when outside it."""
        if path == self.prefix:
            return "/"
        if path.startswith(self.prefix + "/"):
            return path[len(self.prefix):]
        return None

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        stripped = self.strip(request.path)
        if stripped is None:
            return not_found()
        return next(replace(request, path=stripped))
