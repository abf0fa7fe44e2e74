"""
=============================================================================
STATUS HANDLERS
=============================================================================

The two plain JSON endpoints of the service:

    GET /                  → 200  StatusHandler
    anything unmatched     → 404  not_found_handler

    ┌─────────────────────────────────────────────────────────────────────┐
    │  200 OK                                                             │
    │  Content-Type: application/json                                     │
    │  X-Request-ID: 12                                                   │
    │                                                                      │
    │  {"status":"success","message":"Port 10001 is working fine",        │
    │   "timestamp":"2026-10-18T14:03:07+02:00","request_id":12,          │
    │   "path":"/","method":"GET"}                                        │
    └─────────────────────────────────────────────────────────────────────┘

Both read the request identifier through ``request.request_id``. The
logging stage always sets it for routed requests; a missing identifier
is reported as ``null`` and the X-Request-ID header is left out.

=============================================================================
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus
from ..timeutil import rfc3339


class StatusHandler:
    """
    Reports that the server is up on its configured port.

    Args:
        port: The configured listen port, echoed in the message.
    """

    def __init__(self, port: str):
        self.port = port

    @property
    def message(self) -> str:
        return f"Port {self.port} is working fine"

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        builder = ResponseBuilder().status(HTTPStatus.OK)
        _set_request_id(builder, request)

        return builder.json({
            "status": "success",
            "message": self.message,
            "timestamp": rfc3339(),
            "request_id": request.request_id,
            "path": request.path,
            "method": request.method,
        }).build()


def not_found_handler(request: HTTPRequest) -> HTTPResponse:
    """404 for every path without a route."""
    builder = ResponseBuilder().status(HTTPStatus.NOT_FOUND)
    _set_request_id(builder, request)

    return builder.json({
        "status": "error",
        "message": "Resource not found",
        "path": request.path,
        "request_id": request.request_id,
        "timestamp": rfc3339(),
    }).build()


def _set_request_id(builder: ResponseBuilder, request: HTTPRequest) -> None:
    if request.request_id is not None:
        builder.header("X-Request-ID", str(request.request_id))
