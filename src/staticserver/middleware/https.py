"""
=============================================================================
HTTPS PROMOTION
=============================================================================

Behind a TLS-terminating proxy the server only ever sees plain HTTP. The
proxy reports the original scheme in `X-Forwarded-Proto`; when that says
"http" the client is sent to the same URL over https:

    GET /docs/?v=2                       301 Moved Permanently
    Host: example.com          ──►       Location: https://example.com/docs/?v=2
    X-Forwarded-Proto: http

This is the outermost stage: nothing else runs for a redirected request,
not even the access log, so the stage logs the 301 itself.

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, redirect


access_logger = logging.getLogger("staticserver.access")


class HTTPSRedirectMiddleware(Middleware):

    def __init__(self, log_requests: bool = False):
        self.log_requests = log_requests

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.get_header("X-Forwarded-Proto").lower() != "http":
            return next(request)

        location = f"https://{request.host}{request.request_uri}"
        if self.log_requests:
            access_logger.info(f"301 {request.method} {request.path}")
        return redirect(location, permanent=True)
