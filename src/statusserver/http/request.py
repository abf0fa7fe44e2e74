"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects (RFC 7230).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /healthz?verbose=1 HTTP/1.1\r\n      ← request line          │
    │    Host: localhost:10001\r\n                ← headers               │
    │    User-Agent: kube-probe/1.29\r\n                                   │
    │    \r\n                                     ← separator             │
    │    (optional body, Content-Length bytes)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every parsed request carries an empty RequestContext. The logging stage
of the middleware pipeline fills in the request identifier; handlers read
it back through HTTPRequest.request_id.

=============================================================================
PARSE ERRORS
=============================================================================

    400 Bad Request                 malformed request line, bad framing
    405 Method Not Allowed          unknown method token
    413 Payload Too Large           request exceeds max_request_size
    505 HTTP Version Not Supported  anything but HTTP/1.0 and HTTP/1.1

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, unquote, urlsplit
import re

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client.
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = HTTPStatus(status_code)


@dataclass
class RequestContext:
    """
    Per-request value bag.

    Scoped to one request: created with it, discarded after the response
    is written.
    """

    request_id: Optional[int] = None


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, POST, OPTIONS, ...
        path:           Request path WITHOUT query string, percent-decoded
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Lower-cased header names → values
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes (Content-Length framed)
        client_address: (ip, port) of the peer
        context:        RequestContext filled in by the pipeline

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)
    context: RequestContext = field(default_factory=RequestContext)

    @property
    def request_id(self) -> Optional[int]:
        """
        The identifier assigned by the logging stage, or None.

        Every route (and the not-found fallback) is wrapped by the logging
        stage, so a dispatched request always has one; handlers still treat
        a missing value softly.
        """
        return self.context.request_id

    @property
    def user_agent(self) -> str:
        """The client-supplied User-Agent header ("" when absent)."""
        return self.headers.get("user-agent", "")

    @property
    def remote_addr(self) -> str:
        """Peer address formatted as "ip:port" ("[ip]:port" for IPv6)."""
        host, port = self.client_address[0], self.client_address[1]
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{port}"

    @property
    def content_length(self) -> int:
        """Content-Length as an integer; 0 when missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client expects the connection to stay open.

            HTTP/1.1  keep-alive unless "Connection: close"
            HTTP/1.0  close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        1. Size check             → 413 when too large
        2. Find \\r\\n\\r\\n          → 400 when missing
        3. Request line           → 400 / 405 / 505
        4. Headers                → lower-cased, duplicates comma-joined
        5. Body                   → exactly Content-Length bytes
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Raw request bytes (one complete request).
            client_address: Peer (ip, port), kept for logging.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Split "METHOD SP REQUEST-URI SP HTTP-VERSION" into its parts.

        Returns:
            (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(
                f"Invalid method: {method}",
                status_code=HTTPStatus.METHOD_NOT_ALLOWED,
            )

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        if not uri.startswith("/"):
            # absolute-form: http://host:port/path?query
            parsed = urlsplit(uri)
            raw_path, query = parsed.path, parsed.query
        else:
            # origin-form; "//x" and ";params" are part of the path
            raw_path, _, query = uri.partition("?")
            raw_path = raw_path.split("#", 1)[0]

        path = unquote(raw_path) or "/"
        query_params = parse_qs(query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines.

        Names are normalized to lower case. Repeated headers are joined
        with ", " (RFC 7230 §3.2.2). Obsolete line folding (continuation
        lines starting with whitespace) is appended to the previous value.
        Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse a single request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
