"""
pytest configuration and fixtures.
"""

import http.client
import json
import socket
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from statusserver import HTTPServer, ServerConfig
from statusserver.context import ServerContext
from statusserver.http import Router


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /healthz?verbose=1&verbose=2 HTTP/1.1\r\n"
        b"Host: localhost:10001\r\n"
        b"User-Agent: kube-probe/1.29\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a JSON body."""
    body = b'{"check": "readiness"}'
    head = (
        b"POST / HTTP/1.1\r\n"
        b"Host: localhost:10001\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: %d\r\n"
        b"Connection: close\r\n"
        b"\r\n"
    ) % len(body)
    return head + body


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration: loopback, OS-assigned port, short timeouts."""
    return ServerConfig(
        host="127.0.0.1",
        port="0",
        read_timeout=2.0,
        write_timeout=2.0,
        idle_timeout=2.0,
        shutdown_timeout=5.0,
        log_level="INFO",
    )


@pytest.fixture
def context(config: ServerConfig) -> ServerContext:
    return ServerContext.create(config)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class Response:
    """What a test client saw."""

    def __init__(self, status: int, headers: dict, body: bytes):
        self.status = status
        self.headers = headers
        self.body = body

    def json(self):
        return json.loads(self.body)


class RunningServer:
    """An HTTPServer started on a background listener thread."""

    def __init__(self, server: HTTPServer):
        self.server = server

    @property
    def port(self) -> int:
        return self.server.address[1]

    def request(
        self,
        method: str,
        path: str,
        headers: Optional[dict] = None,
        timeout: float = 5.0,
    ) -> Response:
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=timeout)
        try:
            conn.request(method, path, headers=headers or {})
            resp = conn.getresponse()
            body = resp.read()
            return Response(
                resp.status,
                {name.lower(): value for name, value in resp.getheaders()},
                body,
            )
        finally:
            conn.close()

    def get(self, path: str, **kwargs) -> Response:
        return self.request("GET", path, **kwargs)


def start_server(config: ServerConfig, router: Optional[Router] = None, context=None) -> RunningServer:
    server = HTTPServer(config, router=router, context=context)
    server.start()
    if not server.wait_until_listening(timeout=5.0):
        server.close()
        raise RuntimeError("Server failed to start")
    return RunningServer(server)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """The service routes on a live socket."""
    srv = start_server(config)

    yield srv

    try:
        srv.server.shutdown(timeout=5.0)
    except TimeoutError:
        srv.server.close()


@pytest.fixture
def server_factory() -> Generator:
    """
    Start servers with custom configs/routers; whatever is still running
    at teardown is force-closed.
    """
    started = []

    def factory(config: ServerConfig, router: Optional[Router] = None, context=None) -> RunningServer:
        srv = start_server(config, router=router, context=context)
        started.append(srv)
        return srv

    yield factory

    for srv in started:
        srv.server.close()
