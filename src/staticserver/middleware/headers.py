"""
Per-path response headers from the JSON header configuration.

    {"path": "/assets", "fileExtension": "js",
     "headers": [{"key": "Cache-Control", "value": "max-age=31536000"}]}

Headers of every matching rule are set on the response coming back from
the handler; later rules overwrite earlier ones.
"""

from .base import Middleware, NextHandler
from ..header_config import HeaderConfig
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


class CustomHeadersMiddleware(Middleware):

    def __init__(self, config: HeaderConfig):
        self.config = config

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)
        for name, value in self.config.lookup(request.path):
            response.set_header(name, value)
        return response
