"""
Unit tests for the exact-path router and the service route table.
"""

import pytest

from statusserver.http.router import Router, Route
from statusserver.http.request import HTTPRequest, parse_request
from statusserver.http.response import HTTPResponse, ResponseBuilder
from statusserver.context import ServerContext
from statusserver.routes import build_router, HEALTH_PATHS


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path, client_address=("127.0.0.1", 50000))


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path}).build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        route = router.add_route("/ping", dummy_handler)

        assert isinstance(route, Route)
        assert route.path == "/ping"
        assert "/ping" in router
        assert len(router) == 1

    def test_match_exact_path(self):
        router = Router()
        router.add_route("/health", dummy_handler)

        assert router.match("/health") is not None
        assert router.match("/healthy") is None

    def test_no_trailing_slash_normalization(self):
        """A trailing slash makes a different path."""
        router = Router()
        router.add_route("/health", dummy_handler)

        assert router.match("/health/") is None

    def test_any_method_matches(self):
        router = Router()
        router.add_route("/", dummy_handler)

        for method in ("GET", "POST", "DELETE", "PATCH"):
            response = router.handle(make_request(method, "/"))
            assert response.status == 200

    def test_duplicate_route_rejected(self):
        router = Router()
        router.add_route("/", dummy_handler)

        with pytest.raises(ValueError):
            router.add_route("/", dummy_handler)

    def test_path_must_be_absolute(self):
        with pytest.raises(ValueError):
            Router().add_route("health", dummy_handler)

    def test_route_name_defaults_to_path(self):
        router = Router()

        assert router.add_route("/ping", dummy_handler).name == "/ping"
        assert router.add_route("/pong", dummy_handler, name="pong").name == "pong"

    def test_unmatched_without_default(self):
        """A bare router answers 404 JSON."""
        response = Router().handle(make_request("GET", "/missing"))

        assert response.status == 404
        assert response.json() == {"status": "error", "message": "Resource not found"}

    def test_default_handler(self):
        def fallback(request):
            return ResponseBuilder().status(404).text("nope").build()

        router = Router(default=fallback)
        assert router.handle(make_request("GET", "/missing")).body == b"nope"

        router.set_default(None)
        assert router.handle(make_request("GET", "/missing")).json()["status"] == "error"

    def test_router_is_callable(self):
        router = Router()
        router.add_route("/", dummy_handler)

        assert router(make_request("GET", "/")).json() == {"path": "/"}


class TestServiceRoutes:
    """Tests for build_router()."""

    def test_mounted_paths(self, context):
        router = build_router(context)

        assert len(router) == 3
        for path in ("/", *HEALTH_PATHS):
            assert path in router

    @pytest.mark.parametrize("raw_path", [b"//healthz", b"//nothing/here", b"/health;v=1"])
    def test_unusual_paths_are_not_found(self, context, raw_path):
        """Paths are matched exactly as sent and echoed back unchanged."""
        request = parse_request(b"GET " + raw_path + b" HTTP/1.1\r\nHost: test\r\n\r\n")
        response = build_router(context).handle(request)

        assert response.status == 404
        assert response.json()["path"] == raw_path.decode()

    def test_every_route_gets_a_request_id(self, context):
        router = build_router(context)

        ids = [
            router.handle(make_request("GET", path)).headers["X-Request-ID"]
            for path in ("/", "/health", "/healthz", "/missing")
        ]

        assert ids == ["1", "2", "3", "4"]

    def test_default_is_wrapped_not_found(self, context):
        response = build_router(context).handle(make_request("GET", "/nope"))

        assert response.status == 404
        body = response.json()
        assert body["message"] == "Resource not found"
        assert body["request_id"] == 1
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_options_short_circuits_every_route(self, context):
        router = build_router(context)

        for path in ("/", "/health", "/healthz", "/missing"):
            response = router.handle(make_request("OPTIONS", path))
            assert response.status == 200
            assert response.body == b""
            assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"

        # Preflights never reach the logging stage.
        assert context.counter.value == 0

    def test_status_message_uses_configured_port(self, config):
        context = ServerContext.create(config.replace(port="10001"))
        body = build_router(context).handle(make_request("GET", "/")).json()

        assert body["message"] == "Port 10001 is working fine"
