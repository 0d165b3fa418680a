"""
pytest configuration and fixtures.
"""

import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig, build_context, create_app
from staticserver.http import HTTPRequest


SHELL_HTML = (
    "<!doctype html><html><head><script>"
    "window.config = {'apiUrl': 'http://localhost:3000', 'env' : 'dev'};"
    "</script></head><body>shell</body></html>"
)


def build_request(
    path: str = "/",
    method: str = "GET",
    headers: Optional[dict] = None,
    query: str = "",
    raw_path: str = "",
) -> HTTPRequest:
    """Build an HTTPRequest the way the parser would (lowercase header names)."""
    return HTTPRequest(
        method=method,
        path=path,
        headers={name.lower(): value for name, value in (headers or {}).items()},
        query=query,
        raw_path=raw_path,
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def make_request():
    """The build_request helper, for tests that construct requests directly."""
    return build_request


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small SPA build:

        index.html              shell with 'apiUrl' and 'env' keys
        app.js, style.css
        docs/index.html         directory with its own index
        docs/guide/intro.html
        app/index.html          nested shell for relative fallback
        app/settings/           directory without index
        assets/logo.png
    """
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text(SHELL_HTML)
    (root / "app.js").write_text("console.log('app');\n" * 50)
    (root / "style.css").write_text("body { margin: 0; }\n")
    (root / "docs" / "guide").mkdir(parents=True)
    (root / "docs" / "index.html").write_text("<h1>docs</h1>")
    (root / "docs" / "guide" / "intro.html").write_text("<h1>intro</h1>")
    (root / "app" / "settings").mkdir(parents=True)
    (root / "app" / "index.html").write_text("<h1>app shell</h1>")
    (root / "assets").mkdir()
    (root / "assets" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(range(256)))
    return root


@pytest.fixture
def config(site: Path, tmp_path: Path) -> ServerConfig:
    """Test configuration serving `site` on a free port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        base_path=str(site),
        header_config_path=str(tmp_path / "no-header-config.json"),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


class TestServer:
    """Runs a full server (context, app, sockets) in a background thread."""

    __test__ = False

    def __init__(self, config: ServerConfig):
        self.config = config
        self.context = build_context(config)
        self.server = HTTPServer(config, create_app(self.context).handle)
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def run_server() -> Generator:
    """
    Factory fixture: run_server(config) starts a server and returns it;
    every server started this way is stopped after the test.
    """
    servers = []

    def _start(config: ServerConfig) -> TestServer:
        test_srv = TestServer(config)
        test_srv.start()
        servers.append(test_srv)
        return test_srv

    yield _start

    for test_srv in servers:
        test_srv.stop()
