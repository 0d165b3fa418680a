"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

The middleware protocol and the ordered pipeline that composes stages
around the file-serving handler (Chain of Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     REQUEST FLOW THROUGH STAGES                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   request ─► HTTPSRedirect ─► Logging ─► StripPrefix ─► Shell ─►    │
    │              Auth ─► CustomHeaders ─► Compression ─► FileServing    │
    │                                                                     │
    │   response ◄── flows back out through the same stages ◄──           │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Each stage either returns its own response (short-circuit: redirect,
shell, 401) without calling `next`, or calls `next(request)` and may
decorate what comes back. Disabled stages are never added, so the
pipeline only contains the stages that do something.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for pipeline stages.

    =========================================================================
    THE MIDDLEWARE CONTRACT
    =========================================================================

        def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse

    Call `next(request)` to continue the chain, or return a response
    directly to short-circuit it.

    =========================================================================
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        pass

    @property
    def name(self) -> str:
        """Stage name, as reported by MiddlewarePipeline.names."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered list of stages wrapped around a final handler.

    =========================================================================
    PIPELINE ARCHITECTURE
    =========================================================================

        pipeline = MiddlewarePipeline()
        pipeline.add(HTTPSRedirectMiddleware())   # first added = outermost
        pipeline.add(BasicAuthMiddleware(cred))
        handler = pipeline.wrap(file_handler.handle)

    Resulting structure:

            ┌───────────────────────────────────────────────┐
            │  HTTPSRedirectMiddleware                      │
            │  ┌─────────────────────────────────────────┐  │
            │  │  BasicAuthMiddleware                    │  │
            │  │  ┌───────────────────────────────────┐  │  │
            │  │  │         FileServingHandler        │  │  │
            │  │  └───────────────────────────────────┘  │  │
            │  └─────────────────────────────────────────┘  │
            └───────────────────────────────────────────────┘

    =========================================================================
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append a stage; stages run in the order they were added."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    @property
    def names(self) -> List[str]:
        """Stage names, outermost first."""
        return [mw.name for mw in self._middleware]

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every stage in the pipeline.

        =====================================================================
        HOW WRAPPING WORKS
        =====================================================================

        Given: [MW1, MW2, MW3] and handler

            current = handler
            current = MW3 around current
            current = MW2 around current
            current = MW1 around current

        Final: MW1 → MW2 → MW3 → handler

        =====================================================================
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
