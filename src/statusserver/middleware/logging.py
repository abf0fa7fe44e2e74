"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Assigns every request its numeric identifier and writes two access log
lines around the handler:

    [7] Incoming request - Method: GET | Path: /healthz | RemoteAddr: 10.0.0.3:51544 | User-Agent: kube-probe/1.29
    [7] Request completed - Duration: 182.4µs

The identifier comes from the server's RequestCounter and is stored in
the request context, where the handlers read it back through
``request.request_id``.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   start clock ─► counter.next() ─► log incoming ─► store id         │
    │                                                       │             │
    │   log completed ◄── stop clock ◄── next(request) ◄────┘             │
    └─────────────────────────────────────────────────────────────────────┘

The response is passed through untouched.

=============================================================================
"""

import logging
import time

from .base import Middleware, NextHandler
from ..context import RequestCounter
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..timeutil import format_duration


# Access lines go to a dedicated logger so operators can route them
# separately from server diagnostics.
logger = logging.getLogger("statusserver.access")


class LoggingMiddleware(Middleware):
    """
    Request identifier and access logging middleware.

    Args:
        counter: Source of request identifiers. One counter is shared by
            every route so identifiers are unique per server.
    """

    def __init__(self, counter: RequestCounter):
        self.counter = counter

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start = time.monotonic_ns()
        request_id = self.counter.next()

        logger.info(
            "[%d] Incoming request - Method: %s | Path: %s | RemoteAddr: %s | User-Agent: %s",
            request_id,
            request.method,
            request.path,
            request.remote_addr,
            request.user_agent,
        )

        request.context.request_id = request_id

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                "[%d] Request failed - Duration: %s | Error: %s: %s",
                request_id,
                format_duration(time.monotonic_ns() - start),
                type(e).__name__,
                e,
            )
            raise

        logger.info(
            "[%d] Request completed - Duration: %s",
            request_id,
            format_duration(time.monotonic_ns() - start),
        )
        return response
