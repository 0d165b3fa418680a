"""
Unit tests for configuration, the CLI and startup exit codes.
"""

from dataclasses import FrozenInstanceError, replace
from pathlib import Path

import pytest

from staticserver import ServerConfig, build_context
from staticserver.__main__ import build_parser, config_from_args, main
from staticserver.config import parse_header_flag
from staticserver.errors import ConfigurationError


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 1080
        assert config.base_path == "/srv/http"
        assert config.fallback == "/index.html"
        assert config.default_username == "gopher"
        assert config.password_length == 16
        assert config.header_config_path == "/config/headerConfig.json"
        assert config.basic_auth_enabled is False

    def test_explicit_credential_enables_auth(self):
        assert ServerConfig(basic_auth="a:b").basic_auth_enabled is True

    @pytest.mark.parametrize("context,prefix", [
        ("", ""), ("doc", "/doc"), ("/doc/", "/doc"), ("a/b", "/a/b"),
    ])
    def test_mount_prefix(self, context: str, prefix: str):
        assert ServerConfig(context=context).mount_prefix == prefix

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"min_workers": 0},
        {"min_workers": 4, "max_workers": 2},
        {"password_length": 0},
        {"log_format": "xml"},
    ])
    def test_validate(self, config: ServerConfig, overrides: dict):
        with pytest.raises(ConfigurationError):
            replace(config, **overrides).validate()

    def test_missing_base_path(self, config: ServerConfig, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            replace(config, base_path=str(tmp_path / "nope")).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STATIC_PORT", "8080")
        monkeypatch.setenv("STATIC_CONTEXT", "doc")
        monkeypatch.setenv("STATIC_ENABLE_HEALTH", "true")
        monkeypatch.setenv("STATIC_BASIC_AUTH", "alice:pw")
        monkeypatch.setenv("STATIC_WORKERS", "3")

        config = ServerConfig.from_env()

        assert config.port == 8080
        assert config.mount_prefix == "/doc"
        assert config.health_enabled is True
        assert config.basic_auth_enabled is True
        assert (config.min_workers, config.max_workers) == (3, 6)

    def test_from_env_bad_number(self, monkeypatch):
        monkeypatch.setenv("STATIC_PORT", "eighty")
        with pytest.raises(ConfigurationError):
            ServerConfig.from_env()


class TestParseHeaderFlag:

    def test_valid(self):
        assert parse_header_flag("Cache-Control:no-cache") == ("Cache-Control", "no-cache")

    def test_value_keeps_colons(self):
        assert parse_header_flag("Link:<https://a>; rel=x") == ("Link", "<https://a>; rel=x")

    @pytest.mark.parametrize("value", ["", "NoValue", "NoValue:", ":value"])
    def test_invalid(self, value: str):
        assert parse_header_flag(value) is None


class TestCLI:
    """Tests for argument parsing."""

    def test_defaults(self):
        config = config_from_args(build_parser().parse_args([]))

        assert config.port == 1080
        assert config.context == ""
        assert config.substitutions == []
        assert (config.min_workers, config.max_workers) == (4, 8)

    def test_flags_and_substitutions(self):
        args = build_parser().parse_args([
            "--port", "8043",
            "--context", "doc",
            "--fallback", "index.html",
            "--set-basic-auth", "alice:pw",
            "--enable-logging",
            "--https-promote",
            "--enable-health",
            "--append-header", "X-Frame-Options:DENY",
            "apiUrl", "https://api", "env", "prod",
        ])
        config = config_from_args(args)

        assert config.port == 8043
        assert config.fallback == "index.html"
        assert config.basic_auth_enabled
        assert config.log_requests and config.https_promote and config.health_enabled
        assert config.extra_header == ("X-Frame-Options", "DENY")
        assert config.substitutions == ["apiUrl", "https://api", "env", "prod"]

    def test_single_dash_flags(self):
        args = build_parser().parse_args(["-port", "9000", "-enable-basic-auth", "-path", "/tmp"])
        config = config_from_args(args)

        assert config.port == 9000
        assert config.basic_auth_enabled
        assert config.base_path == "/tmp"


class TestStartupExitCodes:
    """main() exits before binding when startup fails."""

    def test_odd_substitutions(self, site: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--path", str(site), "--port", "0", "apiUrl"])
        assert exc_info.value.code == 1

    def test_missing_template(self, site: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--path", str(site), "--port", "0", "--fallback", "/shell.html"])
        assert exc_info.value.code == 2

    def test_bad_credential(self, site: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--path", str(site), "--port", "0", "--set-basic-auth", "nocolon"])
        assert exc_info.value.code == 4

    def test_missing_base_path(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--path", str(tmp_path / "nope"), "--port", "0"])
        assert exc_info.value.code == 4


class TestBuildContext:

    def test_template_kept_in_memory(self, config: ServerConfig, site: Path):
        context = build_context(replace(config, substitutions=["env", "prod"]))

        assert b"'env':'prod'" in context.template_bytes
        assert context.template_bytes == (site / "index.html").read_bytes()

    def test_relative_rule_uses_root_template(self, config: ServerConfig, site: Path):
        context = build_context(replace(config, fallback="index.html"))
        assert context.template_bytes == (site / "index.html").read_bytes()

    def test_disabled_fallback_has_no_template(self, config: ServerConfig):
        context = build_context(replace(config, fallback=""))

        assert context.fallback_rule is None
        assert context.template_bytes is None

    def test_context_is_immutable(self, config: ServerConfig):
        context = build_context(config)
        with pytest.raises(FrozenInstanceError):
            context.credential = None

    def test_generated_credential(self, config: ServerConfig):
        context = build_context(replace(config, basic_auth_enabled=True, password_length=8))

        assert context.credential.username == "gopher"
        assert len(context.credential.password) == 8
