"""
=============================================================================
HEALTH CHECK HANDLER
=============================================================================

Liveness endpoint for load balancers and container orchestrators.

    GET /health     ┐
    GET /healthz    ┘→  200  {"status":"healthy","uptime":"1m3.5s",
                              "uptime_ms":63500,"timestamp":"...",
                              "request_id":3}

The check is shallow: if the process can answer, it is healthy. There
are no dependency checks, so the handler always answers 200.

Uptime is measured on the monotonic clock from the moment the server
context was created, so it never goes backwards when the wall clock is
adjusted.

=============================================================================
"""

from typing import Any, Dict

from ..context import ServerContext
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus
from ..timeutil import MILLISECOND, format_duration, rfc3339


class HealthHandler:
    """
    Health check endpoint handler.

    Args:
        context: Server context; supplies the start time.
    """

    def __init__(self, context: ServerContext):
        self.context = context

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        uptime_ns = self.context.uptime_ns

        data: Dict[str, Any] = {
            "status": "healthy",
            "uptime": format_duration(uptime_ns),
            "uptime_ms": uptime_ns // MILLISECOND,
            "timestamp": rfc3339(),
            "request_id": request.request_id,
        }

        builder = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Cache-Control", "no-store"))

        if request.request_id is not None:
            builder.header("X-Request-ID", str(request.request_id))

        return builder.json(data).build()
