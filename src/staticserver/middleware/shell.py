"""
=============================================================================
FALLBACK SHELL
=============================================================================

Serves the rewritten template (the application shell) straight from
memory for the entry paths of a single-page application:

    ""  or  "/"  or  exactly the template path ("/index.html")
        → 200, template bytes, Content-Type of the template

Every other path continues down the pipeline, where a miss may still end
up at the on-disk fallback asset. The query string does not take part in
the match: "/?utm_source=x" is still the shell.

The stage runs before authentication, so the shell itself is public.

=============================================================================
"""

from .base import Middleware, NextHandler
from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder


class FallbackShellMiddleware(Middleware):

    def __init__(self, template_path: str, template_bytes: bytes):
        self.template_path = template_path
        self.template_bytes = template_bytes
        self.content_type = get_content_type(template_path)
        self._shell_paths = {"", "/", template_path}

    def is_shell_request(self, request: HTTPRequest) -> bool:
        return request.path in self._shell_paths

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if not self.is_shell_request(request):
            return next(request)

        return (ResponseBuilder()
            .content_type(self.content_type)
            .no_cache()
            .body(self.template_bytes)
            .build())
