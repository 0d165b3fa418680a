"""
Unit tests for pipeline assembly and stage ordering.
"""

import base64
import json
import logging
from dataclasses import replace
from pathlib import Path

import pytest

from staticserver import ServerConfig, build_context, build_pipeline, create_app
from staticserver.http import HTTPStatus


ALL_STAGES = [
    "HTTPSRedirectMiddleware",
    "LoggingMiddleware",
    "StripPrefixMiddleware",
    "FallbackShellMiddleware",
    "BasicAuthMiddleware",
    "CustomHeadersMiddleware",
    "CompressionMiddleware",
]


def auth_header(user: str = "alice", password: str = "s3cret") -> dict:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def header_config_file(tmp_path: Path) -> Path:
    path = tmp_path / "headerConfig.json"
    path.write_text(json.dumps({"configs": [{
        "path": "*",
        "fileExtension": "*",
        "headers": [{"key": "X-Custom", "value": "on"}],
    }]}))
    return path


@pytest.fixture
def full_config(config: ServerConfig, header_config_file: Path) -> ServerConfig:
    """Every stage enabled."""
    return replace(
        config,
        https_promote=True,
        log_requests=True,
        context="doc",
        basic_auth="alice:s3cret",
        header_config_path=str(header_config_file),
        append_header="X-Frame-Options:DENY",
        health_enabled=True,
    )


class TestPipelineOrder:
    """Stage list and order."""

    def test_all_stages_in_order(self, full_config: ServerConfig):
        pipeline = build_pipeline(build_context(full_config))
        assert pipeline.names == ALL_STAGES

    def test_defaults_only_add_shell(self, config: ServerConfig):
        assert build_pipeline(build_context(config)).names == ["FallbackShellMiddleware"]

    def test_everything_disabled(self, config: ServerConfig):
        config = replace(config, fallback="")
        assert build_pipeline(build_context(config)).names == []

    def test_misconfigured_append_header_is_ignored(self, config: ServerConfig, caplog):
        config = replace(config, append_header="NoColonHere")

        with caplog.at_level(logging.WARNING, logger="staticserver.context"):
            context = build_context(config)

        assert "CompressionMiddleware" not in build_pipeline(context).names
        assert "appendHeader misconfigured; ignoring." in caplog.text


class TestAuthBeforeHeaders:
    """A rejected request never reaches the header stages."""

    def test_unauthorized_has_no_custom_headers(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))

        response = app.handle(make_request("/doc/app.js"))

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.headers["WWW-Authenticate"] == 'Basic realm="Restricted"'
        assert response.get_header("X-Custom") == ""
        assert response.get_header("X-Frame-Options") == ""

    def test_authorized_gets_headers(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))

        response = app.handle(make_request("/doc/app.js", headers=auth_header()))

        assert response.status == HTTPStatus.OK
        assert response.get_header("X-Custom") == "on"
        assert response.get_header("X-Frame-Options") == "DENY"

    def test_wrong_password(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))

        response = app.handle(make_request("/doc/app.js", headers=auth_header(password="nope")))

        assert response.status == HTTPStatus.UNAUTHORIZED
        assert response.body == b"Unauthorized.\n"


class TestHTTPSRedirect:
    """The redirect short-circuits every other stage."""

    def test_redirect_before_everything(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))
        request = make_request(
            "/doc/app.js",
            headers={"Host": "example.com", "X-Forwarded-Proto": "http"},
            query="v=2",
        )

        response = app.handle(request)

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "https://example.com/doc/app.js?v=2"
        assert response.body == b""
        assert response.get_header("WWW-Authenticate") == ""
        assert response.get_header("X-Custom") == ""
        assert response.get_header("X-Frame-Options") == ""

    def test_redirect_is_logged(self, full_config: ServerConfig, make_request, caplog):
        app = create_app(build_context(full_config))
        request = make_request("/doc/", headers={"Host": "h", "X-Forwarded-Proto": "http"})

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            app.handle(request)

        assert "301 GET /doc/" in caplog.text

    def test_location_keeps_percent_encoding(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))
        request = make_request(
            "/doc/caf\u00e9 menu",
            headers={"Host": "example.com", "X-Forwarded-Proto": "http"},
            raw_path="/doc/caf%C3%A9%20menu",
        )

        response = app.handle(request)

        assert response.headers["Location"] == "https://example.com/doc/caf%C3%A9%20menu"

    def test_https_passes_through(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))
        headers = {"Host": "h", "X-Forwarded-Proto": "https", **auth_header()}

        response = app.handle(make_request("/doc/app.js", headers=headers))

        assert response.status == HTTPStatus.OK


class TestHealth:
    """/health answers regardless of the pipeline."""

    def test_health_with_everything_enabled(self, full_config: ServerConfig, make_request):
        app = create_app(build_context(full_config))
        request = make_request("/health", headers={"X-Forwarded-Proto": "http"})

        response = app.handle(request)

        assert response.status == HTTPStatus.OK
        assert response.body == b"Ok"

    def test_health_disabled(self, config: ServerConfig, make_request):
        app = create_app(build_context(replace(config, fallback="")))
        assert app.handle(make_request("/health")).status == HTTPStatus.NOT_FOUND


class TestShell:
    """Entry paths are served from the in-memory template."""

    def test_root_serves_rewritten_template(self, config: ServerConfig, site: Path, make_request):
        config = replace(config, substitutions=["apiUrl", "https://api.example.com"])
        app = create_app(build_context(config))

        response = app.handle(make_request("/"))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert b"'apiUrl':'https://api.example.com'" in response.body
        assert response.body == (site / "index.html").read_bytes()

    def test_template_path_and_query(self, config: ServerConfig, make_request):
        context = build_context(config)
        app = create_app(context)

        assert app.handle(make_request("/index.html")).body == context.template_bytes
        assert app.handle(make_request("/", query="utm=1")).body == context.template_bytes

    def test_shell_is_public_with_auth(self, config: ServerConfig, make_request):
        app = create_app(build_context(replace(config, basic_auth="alice:s3cret")))

        assert app.handle(make_request("/")).status == HTTPStatus.OK
        assert app.handle(make_request("/app.js")).status == HTTPStatus.UNAUTHORIZED


class TestStripPrefix:

    def test_prefixed_paths(self, config: ServerConfig, make_request):
        app = create_app(build_context(replace(config, context="doc")))

        assert app.handle(make_request("/doc/app.js")).body.startswith(b"console.log")
        assert app.handle(make_request("/doc")).status == HTTPStatus.OK
        assert app.handle(make_request("/app.js")).status == HTTPStatus.NOT_FOUND

    def test_fallback_under_prefix(self, config: ServerConfig, site: Path, make_request):
        app = create_app(build_context(replace(config, context="doc")))

        response = app.handle(make_request("/doc/some/client/route"))

        assert response.body == (site / "index.html").read_bytes()


class TestLoggingStage:

    def test_access_line(self, config: ServerConfig, make_request, caplog):
        app = create_app(build_context(replace(config, log_requests=True)))

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            app.handle(make_request("/style.css"))

        assert '"GET /style.css" 200' in caplog.text

    def test_json_line(self, config: ServerConfig, make_request, caplog):
        app = create_app(build_context(replace(config, log_requests=True, log_format="json")))

        with caplog.at_level(logging.INFO, logger="staticserver.access"):
            app.handle(make_request("/missing.txt"))

        access = [r for r in caplog.records if r.name == "staticserver.access"]
        entry = json.loads(access[-1].getMessage())
        assert entry["path"] == "/missing.txt"
        assert entry["status_code"] == 200


class TestDeepLinks:
    """Client routes the OS cannot stat still get the shell document."""

    @pytest.mark.parametrize("fallback", ["/index.html", "index.html"])
    def test_overlong_segment(self, config: ServerConfig, site: Path, make_request, fallback: str):
        app = create_app(build_context(replace(config, fallback=fallback)))

        response = app.handle(make_request("/" + "a" * 300 + "/deep"))

        assert response.status == HTTPStatus.OK
        assert response.body == (site / "index.html").read_bytes()
