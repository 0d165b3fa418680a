"""
=============================================================================
SERVER CONTEXT
=============================================================================

Everything the request path needs that is decided once at startup:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ build_context(config)                                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │ 1. fallback rule      FallbackRule.parse(config.fallback)           │
    │ 2. filesystem         FallbackFileSystem(base_path, rule)           │
    │ 3. template           pair substitutions, rewrite on disk, keep     │
    │                       the bytes for the shell stage                 │
    │ 4. credential         explicit user:password or a generated one     │
    │ 5. header rules       HeaderConfig.load(header_config_path)         │
    │ 6. extra header       parse --append-header; pool for gzip buffers  │
    └─────────────────────────────────────────────────────────────────────┘

Any failure raises a ConfigurationError subclass carrying the process exit
code, before a socket is ever bound.

The result is a frozen dataclass handed explicitly to build_pipeline();
nothing lives in module globals, so tests can build as many independent
servers as they like.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .config import ServerConfig
from .core.buffer_pool import BufferPool
from .credentials import Credential, CredentialStore
from .filesystem import FallbackFileSystem, FallbackRule
from .header_config import HeaderConfig
from .template import TemplateRewriter, pair_substitutions


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerContext:
    config: ServerConfig
    filesystem: FallbackFileSystem
    fallback_rule: Optional[FallbackRule] = None
    template_bytes: Optional[bytes] = None
    credential: Optional[Credential] = None
    header_config: Optional[HeaderConfig] = None
    extra_header: Optional[Tuple[str, str]] = None
    buffer_pool: Optional[BufferPool] = None


def _load_template(config: ServerConfig, rule: FallbackRule, filesystem: FallbackFileSystem) -> bytes:
    substitutions = pair_substitutions(config.substitutions)
    template_file = filesystem.root / rule.template_path.lstrip("/")
    return TemplateRewriter().rewrite(template_file, substitutions)


def build_context(config: ServerConfig) -> ServerContext:
    """
    Validate `config` and run every startup step.

    Raises:
        ConfigurationError: or one of its subclasses; see errors.py.
    """
    config.validate()

    rule = FallbackRule.parse(config.fallback)
    filesystem = FallbackFileSystem(config.base_path, rule)

    template_bytes = None
    if rule is not None:
        template_bytes = _load_template(config, rule, filesystem)
    elif config.substitutions:
        logger.warning("Substitutions given but fallback is disabled; ignoring them.")

    credential = None
    if config.basic_auth_enabled:
        logger.info("Enabling Basic Auth")
        store = CredentialStore(config.default_username, config.password_length)
        credential = store.initialize(config.basic_auth or None)

    header_config = HeaderConfig.load(config.header_config_path)

    extra_header = None
    buffer_pool = None
    if config.append_header:
        extra_header = config.extra_header
        if extra_header is None:
            logger.warning("appendHeader misconfigured; ignoring.")
        else:
            buffer_pool = BufferPool(max_size=config.max_workers)

    return ServerContext(
        config=config,
        filesystem=filesystem,
        fallback_rule=rule,
        template_bytes=template_bytes,
        credential=credential,
        header_config=header_config,
        extra_header=extra_header,
        buffer_pool=buffer_pool,
    )
