"""Unit tests for FastAPI integration."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, HTTPException
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse

from appwire.application import ExceptionHandlerManager, ServiceContainer
from appwire.application.throttler import Throttler
from appwire.domain import ErrorContext, ErrorPayload, ServiceName, ThrottleDecision
from appwire.infrastructure.fastapi_integration import (
    FastAPIResponseRenderer,
    create_fastapi_dependency,
    create_throttle_dependency,
    error_context_from_request,
    install_exception_handlers,
)
from appwire.infrastructure.fastapi_integration.integration import _retry_after
from appwire.infrastructure.stores import InMemoryAttemptStore


def make_request(headers=None, path="/users", method="GET", client=("10.0.0.1", 5000)):
    raw_headers = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": raw_headers,
        "client": client,
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


class TestCreateFastAPIDependency:
    """Test cases for create_fastapi_dependency."""

    def test_dependency_resolves_service(self):
        """Test that the dependency resolves the named service."""
        container = ServiceContainer()
        container.register(ServiceName.CONFIG, lambda c: {"debug": True})

        dependency = create_fastapi_dependency(container, ServiceName.CONFIG)

        assert dependency() == {"debug": True}
        assert dependency() is container.resolve(ServiceName.CONFIG)


class TestErrorContextFromRequest:
    """Test cases for error_context_from_request."""

    def test_plain_request(self):
        """Test that path and method are captured."""
        context = error_context_from_request(make_request(method="POST"))
        assert context.path == "/users"
        assert context.method == "POST"
        assert context.wants_json is False

    @pytest.mark.parametrize(
        "headers",
        [{"Accept": "application/json"}, {"X-Requested-With": "XMLHttpRequest"}],
    )
    def test_json_requests(self, headers):
        """Test that API and AJAX requests want JSON."""
        assert error_context_from_request(make_request(headers)).wants_json is True


class TestFastAPIResponseRenderer:
    """Test cases for FastAPIResponseRenderer."""

    def test_json_response(self):
        """Test the JSON body of an error."""
        payload = ErrorPayload(status_code=404, title="Page Not Found", message="Nothing here")
        response = FastAPIResponseRenderer().render(payload, ErrorContext(wants_json=True))

        assert isinstance(response, JSONResponse)
        assert response.status_code == 404
        assert json.loads(response.body) == {"title": "Page Not Found", "description": "Nothing here"}

    def test_json_details(self):
        """Test that details are included when present."""
        payload = ErrorPayload(details={"type": "KeyError", "message": "'user'", "trace": []})
        response = FastAPIResponseRenderer().render(payload, ErrorContext(wants_json=True))
        assert json.loads(response.body)["details"]["type"] == "KeyError"

    def test_html_response_is_escaped(self):
        """Test that HTML output escapes the payload."""
        payload = ErrorPayload(status_code=400, title="Bad <Request>", message="a & b")
        response = FastAPIResponseRenderer().render(payload, ErrorContext())

        assert isinstance(response, HTMLResponse)
        body = response.body.decode()
        assert "Bad &lt;Request&gt;" in body
        assert "a &amp; b" in body
        assert "<pre>" not in body

    def test_headers_are_forwarded(self):
        """Test that payload headers reach the response."""
        payload = ErrorPayload(headers={"Retry-After": "30"})
        response = FastAPIResponseRenderer().render(payload, ErrorContext(wants_json=True))
        assert response.headers["retry-after"] == "30"


class TestInstallExceptionHandlers:
    """Test cases for install_exception_handlers."""

    def test_sets_renderer_and_registers_handlers(self):
        """Test that a renderer is installed and handlers are registered on the app."""
        container = ServiceContainer()
        manager = ExceptionHandlerManager(container)
        container.register(ServiceName.ERROR_HANDLER, lambda c: manager)
        app = FastAPI()

        assert install_exception_handlers(app, container) is manager
        assert isinstance(manager.renderer, FastAPIResponseRenderer)
        assert Exception in app.exception_handlers

    def test_keeps_existing_renderer(self):
        """Test that an already set renderer is kept."""
        container = ServiceContainer()
        renderer = MagicMock()
        manager = ExceptionHandlerManager(container, renderer=renderer)
        container.register(ServiceName.ERROR_HANDLER, lambda c: manager)

        install_exception_handlers(FastAPI(), container)

        assert manager.renderer is renderer


class TestThrottleDependency:
    """Test cases for create_throttle_dependency."""

    @pytest.fixture
    def container(self):
        container = ServiceContainer()
        throttler = Throttler(InMemoryAttemptStore())
        throttler.add_throttle_rule("sign_in_attempt", {"method": "interval", "interval": "1 hour", "delays": [0, 30]})
        container.register(ServiceName.THROTTLER, lambda c: throttler)
        return container

    def test_first_attempt_allowed(self, container):
        """Test that the first call passes and returns the decision."""
        throttle = create_throttle_dependency(container, "sign_in_attempt")
        assert throttle(make_request()).allowed

    def test_repeat_attempt_raises_429(self, container):
        """Test that an immediate repeat is rejected with Retry-After."""
        throttle = create_throttle_dependency(container, "sign_in_attempt")
        throttle(make_request())

        with pytest.raises(HTTPException) as exc_info:
            throttle(make_request())

        assert exc_info.value.status_code == 429
        assert 1 <= int(exc_info.value.headers["Retry-After"]) <= 30

    def test_subjects_come_from_request_data(self, container):
        """Test that different clients are throttled separately."""
        throttle = create_throttle_dependency(container, "sign_in_attempt")
        throttle(make_request(client=("10.0.0.1", 5000)))
        assert throttle(make_request(client=("10.0.0.2", 5000))).allowed

    def test_custom_request_data(self, container):
        """Test throttling on custom request data."""
        throttle = create_throttle_dependency(container, "sign_in_attempt", lambda request: {"user": "alex"})
        throttle(make_request(client=("10.0.0.1", 5000)))
        with pytest.raises(HTTPException):
            throttle(make_request(client=("10.0.0.2", 5000)))


class TestRetryAfter:
    """Test cases for the Retry-After computation."""

    def test_rounds_up(self):
        """Test that remaining seconds are rounded up."""
        decision = ThrottleDecision(allowed=False, delay_until=datetime.now(timezone.utc) + timedelta(seconds=29.5))
        assert _retry_after(decision) in (29, 30)

    def test_minimum_of_one(self):
        """Test that an elapsed delay still asks for one second."""
        decision = ThrottleDecision(allowed=False, delay_until=datetime.now(timezone.utc) - timedelta(seconds=5))
        assert _retry_after(decision) == 1

    def test_without_delay(self):
        """Test decisions without a delay."""
        assert _retry_after(ThrottleDecision(allowed=True)) == 0
