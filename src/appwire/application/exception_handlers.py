"""Application layer - Mapping uncaught errors to error responses."""

import traceback
from typing import Any, Callable, Dict, List, Optional, Type

import structlog

from appwire.domain import (
    ErrorContext,
    ErrorPayload,
    HandlerBinding,
    HandlerNotFoundError,
    HttpException,
    IContainer,
    IResponseRenderer,
    ServiceName,
)

logger = structlog.get_logger(__name__)

HandlerFactory = Callable[..., "ExceptionHandler"]

SAFETY_NET_PAYLOAD = ErrorPayload(
    status_code=500,
    title="Server Error",
    message="The server encountered an error it could not recover from.",
)


class ExceptionHandler:
    """Generic handler turning any error into a 500 payload.

    Subclasses override ``determine_status_code``, ``build_payload`` or
    ``should_log`` for their error kinds. Detail fields are only added when
    the handler is built with ``display_error_details=True``.

    Attributes:
        container: Service container, for handlers needing other services.
        error: The error being handled.
        context: What is known about the failed request.
        display_error_details: Whether debug details go into the payload.
    """

    title = "Server Error"
    message = "The server encountered an error it could not recover from."

    def __init__(
        self,
        container: IContainer,
        error: BaseException,
        context: ErrorContext,
        display_error_details: bool = False,
    ) -> None:
        self.container = container
        self.error = error
        self.context = context
        self.display_error_details = display_error_details

    def handle(self) -> ErrorPayload:
        payload = self.build_payload()
        if self.display_error_details:
            payload.details = self.error_details()
        return payload

    def determine_status_code(self) -> int:
        return 500

    def build_payload(self) -> ErrorPayload:
        return ErrorPayload(status_code=self.determine_status_code(), title=self.title, message=self.message)

    def should_log(self) -> bool:
        return self.determine_status_code() >= 500

    def error_details(self) -> Dict[str, Any]:
        return {
            "type": type(self.error).__name__,
            "message": str(self.error),
            "trace": traceback.format_exception(type(self.error), self.error, self.error.__traceback__),
        }


class HttpExceptionHandler(ExceptionHandler):
    """Renders ``HttpException`` with its own status code, title and message."""

    def determine_status_code(self) -> int:
        if isinstance(self.error, HttpException):
            return self.error.status_code
        return super().determine_status_code()

    def build_payload(self) -> ErrorPayload:
        if not isinstance(self.error, HttpException):
            return super().build_payload()
        return ErrorPayload(
            status_code=self.error.status_code,
            title=self.error.title,
            message=self.error.message,
        )


class NotFoundExceptionHandler(HttpExceptionHandler):
    """404s are expected traffic and are never logged."""

    def should_log(self) -> bool:
        return False


class MailerExceptionHandler(ExceptionHandler):
    """Mail delivery failures, reported to the mail channel logger."""

    title = "Mail Error"
    message = "We were unable to send the requested e-mail. Please try again later."

    def handle(self) -> ErrorPayload:
        if self.container.has(ServiceName.MAIL_LOGGER):
            self.container.resolve(ServiceName.MAIL_LOGGER).error("Mail delivery failed", error=str(self.error))
        return super().handle()


class ExceptionHandlerManager:
    """Dispatches errors to the handler registered for their most specific type.

    Handlers are bound to exception types. An error is matched by walking its
    type's MRO from the concrete class towards ``BaseException`` and taking the
    first bound type, so a handler bound to a subclass wins over one bound to
    its base. Errors matching nothing go to the default handler.

    ``handle`` never raises: if the handler or the renderer fails, the failure
    is logged and the safety-net payload is rendered instead, or returned as-is
    when rendering is impossible.

    Example:
        >>> manager = ExceptionHandlerManager(container, display_error_details=False, renderer=renderer)
        >>> manager.register_handler(HttpException, HttpExceptionHandler)
        >>> manager.register_handler(NotFoundException, NotFoundExceptionHandler)
        >>> response = manager.handle(NotFoundException(), ErrorContext(path="/missing"))
    """

    def __init__(
        self,
        container: IContainer,
        display_error_details: bool = False,
        renderer: Optional[IResponseRenderer] = None,
        default_handler: Optional[HandlerFactory] = ExceptionHandler,
    ) -> None:
        self._container = container
        self._display_error_details = display_error_details
        self._renderer = renderer
        self._default_handler = default_handler
        self._handlers: Dict[type, HandlerBinding] = {}

    @property
    def display_error_details(self) -> bool:
        return self._display_error_details

    @property
    def renderer(self) -> Optional[IResponseRenderer]:
        return self._renderer

    def register_handler(self, exception_kind: Type[BaseException], handler_factory: HandlerFactory) -> None:
        """Bind a handler class (or factory) to an exception type.

        Raises:
            TypeError: If ``exception_kind`` is not an exception class.
        """
        if not (isinstance(exception_kind, type) and issubclass(exception_kind, BaseException)):
            raise TypeError(f"{exception_kind!r} is not an exception class")
        self._handlers[exception_kind] = HandlerBinding(exception_kind=exception_kind, handler_factory=handler_factory)

    def set_default_handler(self, handler_factory: Optional[HandlerFactory]) -> None:
        self._default_handler = handler_factory

    def set_renderer(self, renderer: Optional[IResponseRenderer]) -> None:
        self._renderer = renderer

    def registered_kinds(self) -> List[type]:
        return list(self._handlers)

    def validate(self) -> None:
        """Check that every error can be served.

        Raises:
            HandlerNotFoundError: If no default handler is configured.
        """
        if self._default_handler is None:
            raise HandlerNotFoundError()

    def resolve_handler(self, error: BaseException) -> HandlerFactory:
        """Pick the handler for an error.

        Raises:
            HandlerNotFoundError: If no bound type matches and there is no default handler.
        """
        for kind in type(error).__mro__:
            binding = self._handlers.get(kind)
            if binding is not None:
                return binding.handler_factory

        if self._default_handler is None:
            raise HandlerNotFoundError(type(error))
        return self._default_handler

    def handle(self, error: BaseException, context: Optional[ErrorContext] = None) -> Any:
        """Turn an error into a response.

        Args:
            error: The uncaught error.
            context: What is known about the failed request.

        Returns:
            The renderer's response, or an ``ErrorPayload`` when no renderer is set
            or rendering failed.
        """
        context = context or ErrorContext()

        try:
            handler_factory = self.resolve_handler(error)
            handler = handler_factory(self._container, error, context, self._display_error_details)
            payload = handler.handle()
            if handler.should_log():
                self._log(error, context, payload)
        except Exception as e:  # noqa: BLE001
            self._error_logger().critical(
                "Exception handler failed",
                error=repr(error),
                handler_error=repr(e),
                path=context.path,
                exc_info=e,
            )
            payload = SAFETY_NET_PAYLOAD.model_copy(deep=True)

        return self._render(payload, context)

    def _render(self, payload: ErrorPayload, context: ErrorContext) -> Any:
        if self._renderer is None:
            return payload
        try:
            return self._renderer.render(payload, context)
        except Exception as e:  # noqa: BLE001
            self._error_logger().critical("Error response rendering failed", path=context.path, exc_info=e)
            return SAFETY_NET_PAYLOAD.model_copy(deep=True)

    def _log(self, error: BaseException, context: ErrorContext, payload: ErrorPayload) -> None:
        self._error_logger().error(
            "Uncaught exception",
            error_type=type(error).__name__,
            error=str(error),
            status_code=payload.status_code,
            method=context.method,
            path=context.path,
            exc_info=error,
        )

    def _error_logger(self) -> Any:
        if self._container.has(ServiceName.ERROR_LOGGER):
            try:
                return self._container.resolve(ServiceName.ERROR_LOGGER)
            except Exception as e:  # noqa: BLE001
                logger.warning("Error logger unavailable", error=repr(e))
        return logger
