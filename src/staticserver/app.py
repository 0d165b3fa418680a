"""
=============================================================================
APPLICATION ASSEMBLY
=============================================================================

Turns a ServerContext into the request handler the server calls:

    Router
    ├── /health              HealthHandler           (when enabled)
    └── mount <context>      MiddlewarePipeline ─► FileServingHandler

    build_pipeline() adds only the enabled stages, in this order:

        HTTPSRedirectMiddleware      --https-promote
        LoggingMiddleware            --enable-logging
        StripPrefixMiddleware        --context
        FallbackShellMiddleware      --fallback (non-empty)
        BasicAuthMiddleware          --enable-basic-auth / --set-basic-auth
        CustomHeadersMiddleware      valid header config file
        CompressionMiddleware        valid --append-header

=============================================================================
"""

import logging
from typing import Callable

from .context import ServerContext
from .handlers.health import HealthHandler
from .handlers.static import FileServingHandler
from .http.request import HTTPRequest
from .http.response import HTTPResponse
from .http.router import Router
from .middleware import (
    MiddlewarePipeline,
    HTTPSRedirectMiddleware,
    LoggingMiddleware,
    StripPrefixMiddleware,
    FallbackShellMiddleware,
    BasicAuthMiddleware,
    CustomHeadersMiddleware,
    CompressionMiddleware,
)


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


def build_pipeline(context: ServerContext) -> MiddlewarePipeline:
    config = context.config
    pipeline = MiddlewarePipeline()

    if config.https_promote:
        pipeline.add(HTTPSRedirectMiddleware(log_requests=config.log_requests))

    if config.log_requests:
        pipeline.add(LoggingMiddleware(log_format=config.log_format))

    if config.mount_prefix:
        pipeline.add(StripPrefixMiddleware(config.mount_prefix))

    if context.fallback_rule is not None and context.template_bytes is not None:
        pipeline.add(FallbackShellMiddleware(
            context.fallback_rule.template_path,
            context.template_bytes,
        ))

    if context.credential is not None:
        pipeline.add(BasicAuthMiddleware(context.credential))

    if context.header_config is not None:
        pipeline.add(CustomHeadersMiddleware(context.header_config))

    if context.extra_header is not None and context.buffer_pool is not None:
        pipeline.add(CompressionMiddleware(context.extra_header, context.buffer_pool))

    return pipeline


def create_app(context: ServerContext) -> Router:
    """Router with the health route and the site mounted under its prefix."""
    config = context.config
    pipeline = build_pipeline(context)
    file_handler = FileServingHandler(context.filesystem, cache_max_age=config.cache_max_age)

    router = Router()
    if config.health_enabled:
        router.add_route("/health", HealthHandler().handle)
    router.mount(config.mount_prefix, pipeline.wrap(file_handler.handle))

    logger.info(f"Pipeline: {' -> '.join(pipeline.names + ['FileServingHandler'])}")
    return router
