"""
=============================================================================
BASIC AUTH MIDDLEWARE
=============================================================================

Guards everything below it with HTTP Basic authentication against the one
shared Credential built at startup.

    ┌──────────┐  GET /app.js                       ┌──────────┐
    │  client  │ ─────────────────────────────────► │  server  │
    │          │ ◄───────────────────────────────── │          │
    │          │  401 WWW-Authenticate: Basic       │          │
    │          │      realm="Restricted"            │          │
    │          │                                    │          │
    │          │  GET /app.js                       │          │
    │          │  Authorization: Basic Z29waGVyOi4u │          │
    │          │ ─────────────────────────────────► │          │
    │          │ ◄───────────────────────────────── │          │
    └──────────┘  200 ...                           └──────────┘

Stages below auth (custom headers, compression) never run for a
rejected request, so a 401 carries none of their headers.

=============================================================================
"""

from .base import Middleware, NextHandler
from ..credentials import Credential, parse_authorization
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, unauthorized


class BasicAuthMiddleware(Middleware):

    def __init__(self, credential: Credential, realm: str = "Restricted"):
        self.credential = credential
        self.realm = realm

    def is_authorized(self, request: HTTPRequest) -> bool:
        supplied = parse_authorization(request.get_header("Authorization"))
        if supplied is None:
            return False
        return self.credential.matches(*supplied)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if not self.is_authorized(request):
            return unauthorized(self.realm)
        return next(request)
