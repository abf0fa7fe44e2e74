"""
=============================================================================
URL ROUTER
=============================================================================

Maps exact request paths to handlers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Incoming Request                                                   │
    │   GET /healthz                                                       │
    │        │                                                             │
    │        ▼                                                             │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  ROUTER                                                      │   │
    │   │                                                              │   │
    │   │   /          → status                                        │   │
    │   │   /health    → health                                        │   │
    │   │   /healthz   → health          ← MATCH                       │   │
    │   │   (default)  → not-found                                     │   │
    │   └─────────────────────────────────────────────────────────────┘   │
    │        │                                                             │
    │        ▼                                                             │
    │   health(request)                                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Matching is an exact string comparison on the decoded path (query string
already stripped by the parser). There are no parameters, no wildcards
and no trailing-slash normalization: "/health/" does not match "/health".

Routes accept every method. Method-specific behaviour (the CORS preflight
short-circuit) lives in the middleware.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .request import HTTPRequest
from .response import HTTPResponse, not_found


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass(frozen=True)
class Route:
    """A path bound to a handler."""

    path: str
    handler: Handler
    name: Optional[str] = None


class Router:
    """
    Exact-path request router.

        router = Router()
        router.add_route("/ping", ping)

        router.set_default(my_not_found)

    Without a default handler, unmatched paths get a plain 404 JSON error.
    A Router is itself a handler: ``router(request)`` dispatches.
    """

    def __init__(self, default: Optional[Handler] = None):
        self._routes: Dict[str, Route] = {}
        self._default = default

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(self, path: str, handler: Handler, name: Optional[str] = None) -> Route:
        """
        Register ``handler`` for ``path``.

        Raises:
            ValueError: If the path does not start with "/" or is already
                registered.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")
        if path in self._routes:
            raise ValueError(f"Route already registered: {path}")

        route = Route(path=path, handler=handler, name=name or path)
        self._routes[path] = route
        return route

    def set_default(self, handler: Optional[Handler]) -> None:
        """Handler for unmatched paths (None restores the plain 404)."""
        self._default = handler

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def match(self, path: str) -> Optional[Route]:
        return self._routes.get(path)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch to the matching route, else to the default handler."""
        route = self.match(request.path)
        if route is not None:
            return route.handler(request)

        if self._default is not None:
            return self._default(request)

        return not_found()

    __call__ = handle

    def __contains__(self, path: str) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return len(self._routes)
