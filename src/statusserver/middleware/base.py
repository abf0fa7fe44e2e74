"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

The middleware protocol and the pipeline that chains middleware around a
terminal handler (Chain of Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       REQUEST FLOW                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ─────────────────────────────────────────────►            │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌──────────┐                      │
    │   │   CORS   │───►│ Logging  │───►│ Handler  │                      │
    │   └────┬─────┘    └────┬─────┘    └────┬─────┘                      │
    │        │               │               │                            │
    │   OPTIONS? reply   assign id,      build JSON                       │
    │   immediately      log "Incoming"                                   │
    │        │               │               │                            │
    │   add CORS         log "completed"     │                            │
    │   headers          with duration       │                            │
    │                                                                      │
    │   ◄───────────────────────────────────────────── Response           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A middleware either calls ``next(request)`` and returns (possibly
decorated) the response it gets back, or short-circuits by returning its
own response without calling ``next``.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# NextHandler is the next middleware or the terminal handler.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements:

        def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse

    Middleware instances are shared by every connection thread, so any
    state they hold must be safe for concurrent use.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain

        Returns:
            HTTP response (either from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    An ordered list of middleware applied around a terminal handler.

    The first middleware added is the outermost layer:

        pipeline = MiddlewarePipeline().use(CORSMiddleware(), LoggingMiddleware(counter))
        handler = pipeline.wrap(status_handler)

            ┌───────────────────────────────────────────┐
            │  CORSMiddleware                           │
            │  ┌─────────────────────────────────────┐  │
            │  │  LoggingMiddleware                  │  │
            │  │  ┌───────────────────────────────┐  │  │
            │  │  │        status_handler         │  │  │
            │  │  └───────────────────────────────┘  │  │
            │  └─────────────────────────────────────┘  │
            └───────────────────────────────────────────┘

    ``wrap()`` may be called for several handlers; each wrapped handler
    shares the same middleware instances.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware (innermost so far). Returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug("Added middleware: %s", middleware.name)
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware at once, outermost first."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with every middleware in the pipeline.

        Given [MW1, MW2] the result is MW1 → MW2 → handler: we wrap in
        reverse so the first-added middleware ends up outermost.
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

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
