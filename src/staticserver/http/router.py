"""
=============================================================================
URL ROUTER
=============================================================================

The outer dispatcher. It sits in front of the middleware pipeline and
decides which top-level handler a request belongs to:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /health            → exact route   → health handler            │
    │  GET /doc/app/users/42  → mount "/doc"  → middleware pipeline       │
    │  GET /elsewhere         → no match      → 404                       │
    └─────────────────────────────────────────────────────────────────────┘

Exact routes are checked before mounts, so a health endpoint registered
here answers even when the pipeline would demand credentials. Routes match
one literal path for every method; the file handler decides what a method
means.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Optional, List

from .request import HTTPRequest
from .response import HTTPResponse, not_found


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """An exact path and its handler."""

    path: str
    handler: Handler


@dataclass
class Mount:
    """A handler owning a whole subtree ("/doc" owns /doc and /doc/...)."""

    prefix: str
    handler: Handler

    def matches(self, path: str) -> bool:
        if not self.prefix:
            return True
        return path == self.prefix or path.startswith(self.prefix + "/")


class Router:
    """
    Maps request paths to handlers.

        router = Router()
        router.add_route("/health", health.handle)
        router.mount("/doc", pipeline_handler)

        response = router.handle(request)
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._mounts: List[Mount] = []

    def add_route(self, path: str, handler: Handler) -> Route:
        """Register an exact route, answered for any method."""
        route = Route(path=path, handler=handler)
        self._routes.append(route)
        return route

    def mount(self, prefix: str, handler: Handler) -> Mount:
        """Hand every request under `prefix` to `handler`; "" mounts at root."""
        mount = Mount(prefix=prefix.rstrip("/"), handler=handler)
        self._mounts.append(mount)
        return mount

    def match(self, path: str) -> Optional[Route]:
        for route in self._routes:
            if route.path == path:
                return route
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch: exact routes, then mounts, then 404."""
        route = self.match(request.path)
        if route is not None:
            return route.handler(request)

        for mount in self._mounts:
            if mount.matches(request.path):
                return mount.handler(request)

        return not_found()
