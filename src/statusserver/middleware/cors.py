"""
=============================================================================
CORS (Cross-Origin Resource Sharing) MIDDLEWARE
=============================================================================

Lets browser front-ends on other origins call the status endpoints.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   OPTIONS /anything          GET /  (or any other method)           │
    │        │                          │                                  │
    │        ▼                          ▼                                  │
    │   200, empty body            next(request)                           │
    │   + CORS headers                  │                                  │
    │   (handler NOT called)            ▼                                  │
    │                              response + CORS headers                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The headers are added unconditionally:

    Access-Control-Allow-Origin:  *
    Access-Control-Allow-Methods: GET, POST, PUT, DELETE, OPTIONS
    Access-Control-Allow-Headers: Content-Type, Authorization

This middleware is the outermost layer, so a preflight never reaches the
logging stage and does not consume a request identifier. For the same
reason it turns an exception escaping the inner stages into the 500 JSON
response, which then carries the CORS headers like any other.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, error_response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CORSConfig:
    """CORS header values."""

    allow_origin: str = "*"
    allow_methods: str = "GET, POST, PUT, DELETE, OPTIONS"
    allow_headers: str = "Content-Type, Authorization"

    def headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": self.allow_headers,
        }


class CORSMiddleware(Middleware):
    """
    Adds the CORS headers to every response and answers preflight
    (OPTIONS) requests itself.
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        if request.method == "OPTIONS":
            return self._handle_preflight()

        try:
            response = next(request)
        except Exception:
            logger.exception("Handler error: %s %s", request.method, request.path)
            response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        self._add_cors_headers(response)
        return response

    def _handle_preflight(self) -> HTTPResponse:
        response = HTTPResponse(status=HTTPStatus.OK)
        self._add_cors_headers(response)
        return response

    def _add_cors_headers(self, response: HTTPResponse) -> None:
        for name, value in self.config.headers().items():
            response.set_header(name, value)
