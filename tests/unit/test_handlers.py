"""
Unit tests for the status, health and not-found handlers.
"""

import re
import time

from statusserver.handlers import HealthHandler, StatusHandler, not_found_handler
from statusserver.http.request import HTTPRequest


RFC3339 = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(Z|[+-]\d{2}:\d{2})$")


def make_request(method: str = "GET", path: str = "/", request_id=None) -> HTTPRequest:
    request = HTTPRequest(method=method, path=path)
    request.context.request_id = request_id
    return request


class TestStatusHandler:

    def test_body(self):
        response = StatusHandler("10001")(make_request("POST", "/", request_id=12))

        assert response.status == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "Port 10001 is working fine"
        assert body["request_id"] == 12
        assert body["path"] == "/"
        assert body["method"] == "POST"
        assert RFC3339.match(body["timestamp"])

    def test_headers(self):
        response = StatusHandler("10001")(make_request(request_id=12))

        assert response.headers["Content-Type"] == "application/json"
        assert response.headers["X-Request-ID"] == "12"

    def test_missing_request_id(self):
        """Without an identifier the header is omitted and the field is null."""
        response = StatusHandler("10001")(make_request())

        assert "X-Request-ID" not in response.headers
        assert response.json()["request_id"] is None


class TestHealthHandler:

    def test_body(self, context):
        response = HealthHandler(context)(make_request(path="/healthz", request_id=3))

        assert response.status == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["request_id"] == 3
        assert isinstance(body["uptime_ms"], int)
        assert body["uptime_ms"] >= 0
        assert body["uptime"].endswith("s")
        assert RFC3339.match(body["timestamp"])

    def test_headers(self, context):
        response = HealthHandler(context)(make_request(request_id=3))

        assert response.headers["Content-Type"] == "application/json"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Request-ID"] == "3"

    def test_uptime_non_decreasing(self, context):
        handler = HealthHandler(context)

        first = handler(make_request(request_id=1)).json()["uptime_ms"]
        time.sleep(0.005)
        second = handler(make_request(request_id=2)).json()["uptime_ms"]

        assert 0 <= first <= second

    def test_missing_request_id(self, context):
        response = HealthHandler(context)(make_request())

        assert response.json()["request_id"] is None
        assert "X-Request-ID" not in response.headers


class TestNotFoundHandler:

    def test_body(self):
        response = not_found_handler(make_request(path="/nope", request_id=5))

        assert response.status == 404
        body = response.json()
        assert body["status"] == "error"
        assert body["message"] == "Resource not found"
        assert body["path"] == "/nope"
        assert body["request_id"] == 5
        assert RFC3339.match(body["timestamp"])
        assert response.headers["X-Request-ID"] == "5"

    def test_missing_request_id(self):
        response = not_found_handler(make_request(path="/nope"))

        assert response.json()["request_id"] is None
        assert "X-Request-ID" not in response.headers
