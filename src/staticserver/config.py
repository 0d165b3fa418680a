"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every knob of the server in one dataclass, filled from the command line
(`__main__.py`) or from the environment (`ServerConfig.from_env()`).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m staticserver --port 8080 --context doc           │
    │                                                                     │
    │   2. Environment variables (container deployments)                  │
    │      └── STATIC_PORT=8080 STATIC_CONTEXT=doc python -m staticserver │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs before anything touches the disk or the network; a bad
value raises ConfigurationError and the process exits with code 4.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ConfigurationError


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_header_flag(value: str) -> Optional[Tuple[str, str]]:
    """
    Split an `--append-header` value of the form `Name:Value`.

    Only the first colon separates, so `Link:<a:b>` keeps its value intact.
    Returns None when either side is empty.
    """
    if not value:
        return None
    name, _, header_value = value.partition(":")
    name = name.strip()
    if not name or not header_value:
        return None
    return name, header_value


@dataclass
class ServerConfig:
    """
    Configuration for the static server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK / HTTP
    - host, port, backlog, buffer_size, timeout
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING
    - min_workers, max_workers, queue_size

    SITE
    - base_path, context, fallback, substitutions
    - append_header, header_config_path, cache_max_age

    FEATURES
    - basic_auth_enabled, basic_auth, default_username, password_length
    - log_requests, https_promote, health_enabled

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    port: int = 1080
    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Seconds to wait for the first request on a new connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    max_request_size: int = 1024 * 1024
    """A static server only receives headers; 1 MB is generous."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 8
    queue_size: int = 100

    # ─────────────────────────────────────────────────────────────────────
    # SITE
    # ─────────────────────────────────────────────────────────────────────

    base_path: str = "/srv/http"
    """Directory the files are served from."""

    context: str = ""
    """
    Mount prefix without slashes: "doc" serves the site under /doc/.
    Empty serves it at the root.
    """

    fallback: str = "/index.html"
    """
    Fallback rule for missing paths:
    - "/index.html" - absolute, always the same asset
    - "index.html"  - relative, nearest match walking up the directories
    - ""            - disabled, misses are 404
    """

    substitutions: List[str] = field(default_factory=list)
    """Flat `key value key value ...` list applied to the fallback template."""

    append_header: str = ""
    """`Name:Value` header set on every response; also turns gzip on."""

    header_config_path: str = "/config/headerConfig.json"
    cache_max_age: int = 3600

    # ─────────────────────────────────────────────────────────────────────
    # FEATURES
    # ─────────────────────────────────────────────────────────────────────

    basic_auth_enabled: bool = False
    basic_auth: str = ""
    """Explicit `user:password`; setting it enables basic auth."""

    default_username: str = "gopher"
    password_length: int = 16

    log_requests: bool = False
    https_promote: bool = False
    health_enabled: bool = False

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log line format: 'text' or 'json'."""

    server_name: str = "staticserver/1.0"

    def __post_init__(self):
        if self.basic_auth:
            self.basic_auth_enabled = True

    @property
    def mount_prefix(self) -> str:
        """The context as a URL prefix: "doc" → "/doc", "" → ""."""
        context = self.context.strip("/")
        return f"/{context}" if context else ""

    @property
    def extra_header(self) -> Optional[Tuple[str, str]]:
        return parse_header_flag(self.append_header)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        STATIC_HOST               bind address (default: 0.0.0.0)
        STATIC_PORT               port (default: 1080)
        STATIC_CONTEXT            mount prefix (default: none)
        STATIC_PATH               base directory (default: /srv/http)
        STATIC_FALLBACK           fallback rule (default: /index.html)
        STATIC_APPEND_HEADER      Name:Value header (default: none)
        STATIC_BASIC_AUTH         user:password (enables basic auth)
        STATIC_ENABLE_BASIC_AUTH  1/true to enable with a generated password
        STATIC_ENABLE_LOGGING     1/true for the access log
        STATIC_HTTPS_PROMOTE      1/true to redirect plain HTTP
        STATIC_ENABLE_HEALTH      1/true for /health
        STATIC_HEADER_CONFIG_PATH header rules file
        STATIC_WORKERS            min worker threads (max is twice that)
        STATIC_LOG_LEVEL          process log level (default: INFO)

        =====================================================================
        """
        try:
            workers = int(os.getenv("STATIC_WORKERS", "4"))
            port = int(os.getenv("STATIC_PORT", "1080"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment value: {e}") from e

        return cls(
            host=os.getenv("STATIC_HOST", "0.0.0.0"),
            port=port,
            context=os.getenv("STATIC_CONTEXT", ""),
            base_path=os.getenv("STATIC_PATH", "/srv/http"),
            fallback=os.getenv("STATIC_FALLBACK", "/index.html"),
            append_header=os.getenv("STATIC_APPEND_HEADER", ""),
            basic_auth=os.getenv("STATIC_BASIC_AUTH", ""),
            basic_auth_enabled=_env_flag("STATIC_ENABLE_BASIC_AUTH"),
            log_requests=_env_flag("STATIC_ENABLE_LOGGING"),
            https_promote=_env_flag("STATIC_HTTPS_PROMOTE"),
            health_enabled=_env_flag("STATIC_ENABLE_HEALTH"),
            header_config_path=os.getenv("STATIC_HEADER_CONFIG_PATH", "/config/headerConfig.json"),
            min_workers=workers,
            max_workers=workers * 2,
            log_level=os.getenv("STATIC_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Fail fast on values the server cannot start with."""
        # Port 0 lets the OS pick one (used by the tests)
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ConfigurationError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigurationError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ConfigurationError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0")

        if self.password_length < 1:
            raise ConfigurationError("password_length must be >= 1")

        if self.log_format not in ("text", "json"):
            raise ConfigurationError(f"Unknown log format: {self.log_format}")

        if not os.path.isdir(self.base_path):
            raise ConfigurationError(f"Base path is not a directory: {self.base_path}")
