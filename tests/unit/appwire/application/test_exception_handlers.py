"""Unit tests for exception handlers and ExceptionHandlerManager."""

from unittest.mock import MagicMock

import pytest

from appwire.application.container import ServiceContainer
from appwire.application.exception_handlers import (
    SAFETY_NET_PAYLOAD,
    ExceptionHandler,
    ExceptionHandlerManager,
    HttpExceptionHandler,
    MailerExceptionHandler,
    NotFoundExceptionHandler,
)
from appwire.domain import (
    ErrorContext,
    ErrorPayload,
    HandlerNotFoundError,
    HttpException,
    MailerException,
    NotFoundException,
    ServiceName,
)


class ValidationFailed(ValueError):
    pass


class ValueErrorHandler(ExceptionHandler):
    title = "Invalid Value"

    def determine_status_code(self):
        return 422


class ValidationFailedHandler(ExceptionHandler):
    title = "Validation Failed"

    def determine_status_code(self):
        return 400


class BrokenHandler(ExceptionHandler):
    def handle(self):
        raise RuntimeError("handler bug")


@pytest.fixture
def error_logger():
    return MagicMock()


@pytest.fixture
def container(error_logger):
    container = ServiceContainer()
    container.register(ServiceName.ERROR_LOGGER, lambda c: error_logger)
    return container


class TestExceptionHandler:
    """Test cases for the generic handler."""

    def test_generic_payload(self, container):
        """Test that any error becomes a detail-free 500."""
        payload = ExceptionHandler(container, KeyError("user"), ErrorContext()).handle()
        assert payload.status_code == 500
        assert payload.title == "Server Error"
        assert payload.details is None

    def test_details_with_flag(self, container):
        """Test that details are added only when enabled."""
        payload = ExceptionHandler(container, KeyError("user"), ErrorContext(), display_error_details=True).handle()
        assert payload.details["type"] == "KeyError"
        assert "user" in payload.details["message"]
        assert isinstance(payload.details["trace"], list)

    def test_server_errors_are_logged(self, container):
        """Test that 5xx errors should be logged."""
        assert ExceptionHandler(container, RuntimeError(), ErrorContext()).should_log()


class TestHttpExceptionHandlers:
    """Test cases for HTTP exception handlers."""

    def test_http_exception_payload(self, container):
        """Test that HttpException status, title and message are used."""
        error = HttpException("Teapot", status_code=418, title="I'm a teapot")
        handler = HttpExceptionHandler(container, error, ErrorContext())
        payload = handler.handle()

        assert payload.status_code == 418
        assert payload.title == "I'm a teapot"
        assert payload.message == "Teapot"
        assert not handler.should_log()

    def test_non_http_error_falls_back(self, container):
        """Test that other errors get the generic payload."""
        payload = HttpExceptionHandler(container, RuntimeError(), ErrorContext()).handle()
        assert payload.status_code == 500

    def test_not_found_is_never_logged(self, container):
        """Test that 404s are not logged."""
        handler = NotFoundExceptionHandler(container, NotFoundException(), ErrorContext())
        assert handler.handle().status_code == 404
        assert not handler.should_log()


class TestMailerExceptionHandler:
    """Test cases for MailerExceptionHandler."""

    def test_logs_to_mail_logger(self, container):
        """Test that mail failures are reported to the mail logger."""
        mail_logger = MagicMock()
        container.register(ServiceName.MAIL_LOGGER, lambda c: mail_logger)

        payload = MailerExceptionHandler(container, MailerException("smtp down"), ErrorContext()).handle()

        assert payload.title == "Mail Error"
        mail_logger.error.assert_called_once()

    def test_without_mail_logger(self, container):
        """Test that a missing mail logger is tolerated."""
        payload = MailerExceptionHandler(container, MailerException("smtp down"), ErrorContext()).handle()
        assert payload.status_code == 500


class TestHandlerResolution:
    """Test cases for picking the handler of an error."""

    def test_most_specific_handler_wins(self, container):
        """Test that a handler bound to a subclass wins over its base's."""
        manager = ExceptionHandlerManager(container)
        manager.register_handler(ValueError, ValueErrorHandler)
        manager.register_handler(ValidationFailed, ValidationFailedHandler)

        assert manager.resolve_handler(ValidationFailed()) is ValidationFailedHandler
        assert manager.resolve_handler(ValueError()) is ValueErrorHandler

    def test_base_handler_covers_subclasses(self, container):
        """Test that a handler bound to a base handles its subclasses."""
        manager = ExceptionHandlerManager(container)
        manager.register_handler(ValueError, ValueErrorHandler)
        assert manager.resolve_handler(ValidationFailed()) is ValueErrorHandler

    def test_unmatched_uses_default(self, container):
        """Test that unmatched errors go to the default handler."""
        manager = ExceptionHandlerManager(container)
        assert manager.resolve_handler(KeyError()) is ExceptionHandler

    def test_registration_order_does_not_matter(self, container):
        """Test that registering the base after the subclass keeps the subclass match."""
        manager = ExceptionHandlerManager(container)
        manager.register_handler(ValidationFailed, ValidationFailedHandler)
        manager.register_handler(ValueError, ValueErrorHandler)
        assert manager.resolve_handler(ValidationFailed()) is ValidationFailedHandler
        assert manager.registered_kinds() == [ValidationFailed, ValueError]

    def test_register_non_exception_raises(self, container):
        """Test that only exception classes can be bound."""
        manager = ExceptionHandlerManager(container)
        with pytest.raises(TypeError):
            manager.register_handler(dict, ExceptionHandler)
        with pytest.raises(TypeError):
            manager.register_handler(ValueError(), ExceptionHandler)


class TestMissingDefault:
    """Test cases for managers without a default handler."""

    def test_validate_raises(self, container):
        """Test that validate reports a missing default handler."""
        manager = ExceptionHandlerManager(container, default_handler=None)
        with pytest.raises(HandlerNotFoundError):
            manager.validate()

    def test_validate_passes_with_default(self, container):
        """Test that validate passes with the default handler set."""
        ExceptionHandlerManager(container).validate()

    def test_resolve_handler_raises(self, container):
        """Test that an unmatched error without default raises HandlerNotFoundError."""
        manager = ExceptionHandlerManager(container, default_handler=None)
        with pytest.raises(HandlerNotFoundError) as exc_info:
            manager.resolve_handler(KeyError())
        assert exc_info.value.exception_kind is KeyError

    def test_handle_falls_back_to_safety_net(self, container, error_logger):
        """Test that handle logs critically and returns the safety-net payload."""
        manager = ExceptionHandlerManager(container, default_handler=None)

        payload = manager.handle(KeyError("user"), ErrorContext(path="/users"))

        assert payload == SAFETY_NET_PAYLOAD
        error_logger.critical.assert_called_once()

    def test_set_default_handler(self, container):
        """Test replacing the default handler."""
        manager = ExceptionHandlerManager(container, default_handler=None)
        manager.set_default_handler(ValueErrorHandler)
        assert manager.resolve_handler(KeyError()) is ValueErrorHandler


class TestHandle:
    """Test cases for ExceptionHandlerManager.handle."""

    def test_returns_payload_without_renderer(self, container):
        """Test that the payload is returned when no renderer is set."""
        manager = ExceptionHandlerManager(container)
        manager.register_handler(NotFoundException, NotFoundExceptionHandler)

        payload = manager.handle(NotFoundException())

        assert isinstance(payload, ErrorPayload)
        assert payload.status_code == 404

    def test_server_errors_are_logged(self, container, error_logger):
        """Test that 5xx errors are logged to the error logger."""
        ExceptionHandlerManager(container).handle(RuntimeError("db down"), ErrorContext(path="/api"))

        error_logger.error.assert_called_once()
        assert error_logger.error.call_args.kwargs["path"] == "/api"

    def test_not_found_is_not_logged(self, container, error_logger):
        """Test that 404s skip logging."""
        manager = ExceptionHandlerManager(container)
        manager.register_handler(NotFoundException, NotFoundExceptionHandler)
        manager.handle(NotFoundException())
        error_logger.error.assert_not_called()

    def test_details_follow_manager_flag(self, container):
        """Test that the manager passes its details flag to handlers."""
        hidden = ExceptionHandlerManager(container).handle(RuntimeError("db down"))
        shown = ExceptionHandlerManager(container, display_error_details=True).handle(RuntimeError("db down"))

        assert hidden.details is None
        assert shown.details["message"] == "db down"

    def test_failing_handler_falls_back(self, container, error_logger):
        """Test that a handler that raises gives the safety-net payload."""
        manager = ExceptionHandlerManager(container)
        manager.register_handler(KeyError, BrokenHandler)

        payload = manager.handle(KeyError("user"))

        assert payload == SAFETY_NET_PAYLOAD
        error_logger.critical.assert_called_once()

    def test_renderer_receives_payload_and_context(self, container):
        """Test that the renderer output is returned."""
        renderer = MagicMock()
        renderer.render.return_value = "rendered"
        context = ErrorContext(path="/users", wants_json=True)
        manager = ExceptionHandlerManager(container, renderer=renderer)

        assert manager.handle(RuntimeError(), context) == "rendered"
        payload, passed_context = renderer.render.call_args.args
        assert payload.status_code == 500
        assert passed_context is context

    def test_failing_renderer_falls_back(self, container, error_logger):
        """Test that a renderer failure returns the safety-net payload."""
        renderer = MagicMock()
        renderer.render.side_effect = RuntimeError("template missing")
        manager = ExceptionHandlerManager(container)
        manager.set_renderer(renderer)

        payload = manager.handle(RuntimeError())

        assert payload == SAFETY_NET_PAYLOAD
        error_logger.critical.assert_called_once()

    def test_safety_net_payloads_are_independent(self, container, error_logger):
        """Test that changing a returned safety-net payload leaves later ones untouched."""
        renderer = MagicMock()
        renderer.render.side_effect = RuntimeError("template missing")
        manager = ExceptionHandlerManager(container, default_handler=None)

        first = manager.handle(KeyError("user"))
        first.headers["Retry-After"] = "30"
        second = manager.handle(KeyError("user"))
        manager.set_renderer(renderer)
        rendered = manager.handle(KeyError("user"))
        rendered.headers["X-Trace"] = "abc"

        assert first.headers is not SAFETY_NET_PAYLOAD.headers
        assert SAFETY_NET_PAYLOAD.headers == {}
        assert second.headers == {}
        assert manager.handle(KeyError("user")).headers == {}

    def test_without_error_logger_service(self):
        """Test that handling works when no error logger is registered."""
        payload = ExceptionHandlerManager(ServiceContainer(), default_handler=None).handle(KeyError())
        assert payload == SAFETY_NET_PAYLOAD
