"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses (RFC 7230) for the status server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                      ← status line           │
    │    Content-Type: application/json\r\n       ← headers               │
    │    X-Request-ID: 42\r\n                                              │
    │    Access-Control-Allow-Origin: *\r\n                                │
    │    Content-Length: 151\r\n                  ← added by to_bytes()   │
    │    Date: Sun, 18 Oct 2026 12:00:00 GMT\r\n  ← added by to_bytes()   │
    │    Server: statusserver/1.0\r\n             ← added by to_bytes()   │
    │    \r\n                                                              │
    │    {"status":"success",...}\n               ← body                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every JSON body is written the same way: compact separators and a
trailing newline, so ``curl`` output ends on its own line.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


JSON_CONTENT_TYPE = "application/json"


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Handlers normally build these through ResponseBuilder; middleware
    mutates ``headers`` in place with ``set_header``.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. HTTP/1.1 200 OK"""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header, returning self for chaining."""
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return default

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = "statusserver/1.0", include_body: bool = True) -> bytes:
        """
        Serialize the response for socket.sendall().

        Content-Length, Date and Server are added when the handler did not
        set them. With ``include_body=False`` (HEAD requests) the headers
        still advertise the full Content-Length but no body bytes follow.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        if not include_body:
            return header_bytes
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (
            ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Request-ID", "7")
            .json({"status": "success"})
            .build()
        )
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body; strings are UTF-8 encoded."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._headers["Content-Type"] = content_type
        return self.body(text)

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Serialize ``data`` as the body and set Content-Type to
        ``application/json``.
        """
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        self._body = encode_json(data)
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def encode_json(data: Any) -> bytes:
    """Compact JSON followed by a newline."""
    return (json.dumps(data, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Example: Sun, 18 Oct 2026 12:00:00 GMT

    HTTP dates are always GMT; ``dt`` should be UTC.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(status: Union[HTTPStatus, int], message: Optional[str] = None) -> HTTPResponse:
    """
    A ``{"status": "error", "message": ...}`` JSON response.

    Used for parse failures, handler crashes and the bare-router 404.
    The message defaults to the status phrase.
    """
    status = HTTPStatus(status)
    return (
        ResponseBuilder()
        .status(status)
        .json({"status": "error", "message": message or status.phrase})
        .build()
    )


def not_found(message: str = "Resource not found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)
