"""
=============================================================================
STATICSERVER - Static file server for single-page applications
=============================================================================

A threaded HTTP/1.1 server on raw sockets that serves a directory of
built web assets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  - fallback to a shell document for client-side routes              │
    │  - startup rewrite of 'key':'value' pairs in that document          │
    │  - basic auth, HTTPS promotion, per-path headers, gzip              │
    │  - /health for container probes                                     │
    └─────────────────────────────────────────────────────────────────────┘

    from staticserver import ServerConfig, HTTPServer, build_context, create_app

    config = ServerConfig(base_path="./dist", port=8080)
    server = HTTPServer(config, create_app(build_context(config)).handle)
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig
from .context import ServerContext, build_context
from .app import build_pipeline, create_app
from .errors import ConfigurationError

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "ServerContext",
    "build_context",
    "build_pipeline",
    "create_app",
    "ConfigurationError",
    "__version__",
]
