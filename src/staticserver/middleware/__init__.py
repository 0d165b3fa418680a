"""
=============================================================================
MIDDLEWARE - The request pipeline
=============================================================================

Stages in pipeline order (outermost first):

    ┌─────────────────────────────────────────────────────────────────────┐
    │ 1. HTTPSRedirectMiddleware  301 to https on X-Forwarded-Proto: http │
    │ 2. LoggingMiddleware        access log line                         │
    │ 3. StripPrefixMiddleware    /doc/a → /a                             │
    │ 4. FallbackShellMiddleware  "/" and the template path from memory   │
    │ 5. BasicAuthMiddleware      401 without valid credentials           │
    │ 6. CustomHeadersMiddleware  per-path headers from JSON rules        │
    │ 7. CompressionMiddleware    static header + gzip                    │
    │    ─────────────────────────────────────────────────────────────    │
    │    FileServingHandler       files, fallback, 304, 404               │
    └─────────────────────────────────────────────────────────────────────┘

Each stage is only added when its feature is enabled; see app.py.

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .https import HTTPSRedirectMiddleware
from .logging import LoggingMiddleware, RequestLog
from .prefix import StripPrefixMiddleware
from .shell import FallbackShellMiddleware
from .auth import BasicAuthMiddleware
from .headers import CustomHeadersMiddleware
from .compression import CompressionMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "HTTPSRedirectMiddleware",
    "LoggingMiddleware",
    "RequestLog",
    "StripPrefixMiddleware",
    "FallbackShellMiddleware",
    "BasicAuthMiddleware",
    "CustomHeadersMiddleware",
    "CompressionMiddleware",
]
