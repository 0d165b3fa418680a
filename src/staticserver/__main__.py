"""
=============================================================================
STATIC SERVER CLI ENTRY POINT
=============================================================================

    # Serve /srv/http on port 1080, SPA fallback to /index.html
    python -m staticserver

    # Site under /doc/, nearest index.html as fallback
    python -m staticserver --context doc --fallback index.html

    # Basic auth with a fixed credential, access log as JSON
    python -m staticserver --set-basic-auth admin:s3cret \\
        --enable-logging --log-format json

    # Rewrite 'apiUrl':'...' and 'env':'...' in the shell before serving
    python -m staticserver --path ./dist apiUrl https://api.example.com env prod

Flags are also accepted with a single dash (`-port 8080`), the form used
by existing container images.

=============================================================================
EXIT CODES
=============================================================================

    1   substitution arguments are not key/value pairs
    2   the template file cannot be read
    3   the template file cannot be written back
    4   any other configuration error

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from .app import create_app
from .config import ServerConfig
from .context import build_context
from .errors import ConfigurationError
from .server import HTTPServer, setup_logging


logger = logging.getLogger("staticserver")


def _names(name: str) -> tuple:
    return (f"-{name}", f"--{name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Static file server for single-page applications",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    network = parser.add_argument_group("network")
    network.add_argument(*_names("host"), default="0.0.0.0", help="Address to bind to")
    network.add_argument(*_names("port"), type=int, default=1080, help="Port to listen on")
    network.add_argument(*_names("workers"), type=int, default=4,
                         help="Minimum worker threads (maximum is twice that)")

    site = parser.add_argument_group("site")
    site.add_argument(*_names("context"), default="",
                      help="Path prefix the site is served under, e.g. 'doc' for /doc/")
    site.add_argument(*_names("path"), dest="base_path", default="/srv/http",
                      help="Directory with the static files")
    site.add_argument(*_names("fallback"), default="/index.html",
                      help="Fallback file: absolute (/index.html) for one asset, "
                           "relative (index.html) for the nearest match, empty to disable")
    site.add_argument(*_names("append-header"), dest="append_header", default="",
                      help="Header added to every response, as HeaderName:Value (enables gzip)")
    site.add_argument(*_names("header-config-path"), dest="header_config_path",
                      default="/config/headerConfig.json",
                      help="JSON file with per-path response headers")
    site.add_argument("substitutions", nargs="*", metavar="KEY VALUE",
                      help="Pairs rewritten as 'KEY':'VALUE' in the fallback file")

    auth = parser.add_argument_group("basic auth")
    auth.add_argument(*_names("enable-basic-auth"), dest="enable_basic_auth", action="store_true",
                      help="Enable basic auth with a generated password")
    auth.add_argument(*_names("set-basic-auth"), dest="set_basic_auth", default="",
                      help="Basic auth credential as user:password (enables basic auth)")
    auth.add_argument(*_names("default-user-basic-auth"), dest="default_user", default="gopher",
                      help="Username for the generated credential")
    auth.add_argument(*_names("password-length"), dest="password_length", type=int, default=16,
                      help="Length of the generated password")

    features = parser.add_argument_group("features")
    features.add_argument(*_names("enable-logging"), dest="enable_logging", action="store_true",
                          help="Log every request")
    features.add_argument(*_names("https-promote"), dest="https_promote", action="store_true",
                          help="Redirect requests forwarded as plain HTTP to HTTPS")
    features.add_argument(*_names("enable-health"), dest="enable_health", action="store_true",
                          help="Answer GET /health with 200 Ok")

    logs = parser.add_argument_group("logging")
    logs.add_argument(*_names("log-level"), dest="log_level", default="INFO",
                      choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper)
    logs.add_argument(*_names("log-format"), dest="log_format", default="text",
                      choices=["text", "json"], help="Access log format")

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        min_workers=args.workers,
        max_workers=args.workers * 2,
        context=args.context,
        base_path=args.base_path,
        fallback=args.fallback,
        substitutions=list(args.substitutions),
        append_header=args.append_header,
        header_config_path=args.header_config_path,
        basic_auth_enabled=args.enable_basic_auth,
        basic_auth=args.set_basic_auth,
        default_username=args.default_user,
        password_length=args.password_length,
        log_requests=args.enable_logging,
        https_promote=args.https_promote,
        health_enabled=args.enable_health,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    setup_logging(config.log_level)

    try:
        context = build_context(config)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(e.exit_code)

    server = HTTPServer(config, create_app(context).handle)
    logger.info(f"Listening at {config.host}:{config.port} {config.mount_prefix or '/'}...")
    server.run()


if __name__ == "__main__":
    main()
