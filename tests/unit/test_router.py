"""
Unit tests for the outer dispatcher.
"""

from staticserver.http.router import Router
from staticserver.http.request import HTTPRequest
from staticserver.http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def tagged(tag: str):
    """Handler that answers with its tag and the path it saw."""
    def handler(request: HTTPRequest) -> HTTPResponse:
        return ResponseBuilder().text(f"{tag}:{request.path}").build()
    return handler


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        route = router.add_route("/health", tagged("health"))

        assert router.match("/health") is route
        assert route.path == "/health"

    def test_match_is_exact(self):
        router = Router()
        router.add_route("/health", tagged("health"))

        assert router.match("/health/extra") is None
        assert router.match("/healthz") is None

    def test_route_answers_any_method(self):
        router = Router()
        router.add_route("/health", tagged("health"))

        for method in ("GET", "HEAD", "POST"):
            assert router.handle(make_request(method, "/health")).body == b"health:/health"

    def test_unmatched_is_404(self):
        response = Router().handle(make_request("GET", "/nothing"))
        assert response.status == HTTPStatus.NOT_FOUND


class TestMounts:
    """Tests for subtree mounts."""

    def test_root_mount_takes_everything(self):
        router = Router()
        router.mount("", tagged("site"))

        assert router.handle(make_request("GET", "/a/b")).body == b"site:/a/b"

    def test_prefix_mount(self):
        router = Router()
        router.mount("/doc/", tagged("site"))

        assert router.handle(make_request("GET", "/doc")).status == HTTPStatus.OK
        assert router.handle(make_request("GET", "/doc/x")).body == b"site:/doc/x"
        assert router.handle(make_request("GET", "/docs/x")).status == HTTPStatus.NOT_FOUND

    def test_routes_win_over_mounts(self):
        """An exact route answers before the mount sees the request."""
        router = Router()
        router.add_route("/health", tagged("health"))
        router.mount("", tagged("site"))

        assert router.handle(make_request("GET", "/health")).body == b"health:/health"
        assert router.handle(make_request("GET", "/other")).body == b"site:/other"
