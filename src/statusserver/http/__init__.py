"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 message model of the status server: raw bytes in, structured
requests to the handlers, structured responses back out to bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       bytes → HTTPRequest (+ RequestContext)            │
    │ response.py      HTTPResponse / ResponseBuilder → bytes             │
    │ router.py        exact path → handler, default for the rest         │
    │ status_codes.py  HTTPStatus with reason phrases                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, HTTPParseError, RequestContext, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    not_found,
)
from .router import Handler, Route, Router
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "HTTPRequest",
    "HTTPParseError",
    "RequestContext",
    "RequestParser",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "format_http_date",
    "not_found",

    # Routing
    "Handler",
    "Route",
    "Router",

    # Status codes
    "HTTPStatus",
]
