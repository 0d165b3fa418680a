"""
=============================================================================
HEALTH CHECK HANDLER
=============================================================================

Liveness endpoint for container orchestrators (`--enable-health`):

    GET /health  →  200 "Ok"

    livenessProbe:
      httpGet:
        path: /health
        port: 1080

The route is registered on the outer Router next to the site mount, so
none of the pipeline stages run for it: it answers 200 even with basic
auth, a mount prefix or HTTPS promotion enabled. Probes talk plain HTTP
to the pod and carry no credentials.

=============================================================================
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder


class HealthHandler:

    def __init__(self, body: str = "Ok"):
        self.body = body

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        # A cached "Ok" would hide a dead server
        return (ResponseBuilder()
            .text(self.body)
            .no_cache()
            .build())
