"""
Integration tests against a real server on a local socket.
"""

import base64
import gzip
import http.client
import socket
import threading
from dataclasses import replace
from pathlib import Path

from staticserver import ServerConfig


def get(port: int, path: str, method: str = "GET", headers: dict = None):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request(method, path, headers=headers or {})
        response = conn.getresponse()
        return response.status, dict(response.getheaders()), response.read()
    finally:
        conn.close()


def raw_exchange(port: int, data: bytes) -> bytes:
    with socket.create_connection(("127.0.0.1", port), timeout=5) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestServing:
    """Plain file serving over HTTP/1.1."""

    def test_file_and_headers(self, run_server, config: ServerConfig, site: Path):
        server = run_server(config)

        status, headers, body = get(server.port, "/style.css")

        assert status == 200
        assert body == (site / "style.css").read_bytes()
        assert headers["Content-Type"] == "text/css; charset=utf-8"
        assert headers["Server"] == "staticserver/1.0"

    def test_spa_fallback(self, run_server, config: ServerConfig, site: Path):
        server = run_server(config)

        status, _, body = get(server.port, "/app/users/42")

        assert status == 200
        assert body == (site / "index.html").read_bytes()

    def test_head_has_no_body(self, run_server, config: ServerConfig, site: Path):
        server = run_server(config)

        status, headers, body = get(server.port, "/app.js", method="HEAD")

        assert status == 200
        assert body == b""
        assert int(headers["Content-Length"]) == (site / "app.js").stat().st_size

    def test_conditional_get(self, run_server, config: ServerConfig):
        server = run_server(config)
        _, headers, _ = get(server.port, "/app.js")

        status, _, body = get(server.port, "/app.js", headers={"If-None-Match": headers["ETag"]})

        assert status == 304
        assert body == b""

    def test_traversal_rejected(self, run_server, config: ServerConfig):
        server = run_server(config)

        reply = raw_exchange(server.port, b"GET /../../etc/passwd HTTP/1.1\r\nHost: x\r\n\r\n")

        assert reply.startswith(b"HTTP/1.1 400 ")

    def test_keep_alive(self, run_server, config: ServerConfig):
        server = run_server(config)
        conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
        try:
            for path in ("/style.css", "/app.js", "/"):
                conn.request("GET", path)
                response = conn.getresponse()
                response.read()
                assert response.status == 200
        finally:
            conn.close()

    def test_handler_crash_is_500(self, run_server, config: ServerConfig, monkeypatch):
        server = run_server(config)

        def explode(self, request_path):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(type(server.context.filesystem), "open", explode)
        status, _, _ = get(server.port, "/app.js")
        monkeypatch.undo()

        assert status == 500
        assert get(server.port, "/app.js")[0] == 200


class TestFeatures:
    """Auth, health, prefix, promotion and compression end to end."""

    def test_auth_and_health(self, run_server, config: ServerConfig):
        server = run_server(replace(
            config, basic_auth="alice:s3cret", health_enabled=True, context="doc",
        ))
        token = base64.b64encode(b"alice:s3cret").decode()

        assert get(server.port, "/doc/app.js")[0] == 401
        assert get(server.port, "/doc/app.js", headers={"Authorization": f"Basic {token}"})[0] == 200

        status, _, body = get(server.port, "/health")
        assert (status, body) == (200, b"Ok")

    def test_https_promotion(self, run_server, config: ServerConfig):
        server = run_server(replace(config, https_promote=True))

        status, headers, _ = get(
            server.port, "/docs/?page=2",
            headers={"Host": "example.com", "X-Forwarded-Proto": "http"},
        )

        assert status == 301
        assert headers["Location"] == "https://example.com/docs/?page=2"

    def test_https_promotion_cannot_inject_headers(self, run_server, config: ServerConfig):
        server = run_server(replace(config, https_promote=True))

        reply = raw_exchange(server.port, (
            b"GET /x%0d%0aSet-Cookie:%20owned=1 HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"X-Forwarded-Proto: http\r\n"
            b"\r\n"
        ))
        head = reply.split(b"\r\n\r\n", 1)[0]

        assert head.startswith(b"HTTP/1.1 400 ")
        assert b"Set-Cookie" not in head
        assert b"Location" not in head

    def test_https_promotion_keeps_encoded_path(self, run_server, config: ServerConfig):
        server = run_server(replace(config, https_promote=True))

        status, headers, _ = get(
            server.port, "/caf%C3%A9%20menu?q=a%26b",
            headers={"Host": "example.com", "X-Forwarded-Proto": "http"},
        )

        assert status == 301
        assert headers["Location"] == "https://example.com/caf%C3%A9%20menu?q=a%26b"

    def test_gzip_with_appended_header(self, run_server, config: ServerConfig, site: Path):
        server = run_server(replace(config, append_header="X-Frame-Options:DENY"))

        status, headers, body = get(server.port, "/app.js", headers={"Accept-Encoding": "gzip"})

        assert status == 200
        assert headers["Content-Encoding"] == "gzip"
        assert headers["X-Frame-Options"] == "DENY"
        assert gzip.decompress(body) == (site / "app.js").read_bytes()

    def test_concurrent_gzip_clients(self, run_server, config: ServerConfig, site: Path):
        server = run_server(replace(config, append_header="X-Frame-Options:DENY"))
        expected = {
            "/app.js": (site / "app.js").read_bytes(),
            "/style.css": (site / "style.css").read_bytes(),
            "/docs/": (site / "docs" / "index.html").read_bytes(),
        }
        failures = []

        def client(path: str):
            for _ in range(10):
                status, _, body = get(server.port, path, headers={"Accept-Encoding": "gzip"})
                if status != 200 or gzip.decompress(body) != expected[path]:
                    failures.append(path)

        threads = [
            threading.Thread(target=client, args=(path,))
            for path in expected for _ in range(3)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert failures == []
        assert server.context.buffer_pool.idle <= server.context.buffer_pool.max_size

    def test_shell_with_substitutions(self, run_server, config: ServerConfig):
        server = run_server(replace(config, substitutions=["apiUrl", "https://api.example.com"]))

        status, headers, body = get(server.port, "/")

        assert status == 200
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert b"'apiUrl':'https://api.example.com'" in body
