import html
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping

from fastapi import FastAPI, HTTPException, Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from appwire.application.exception_handlers import ExceptionHandlerManager
from appwire.application.throttler import request_fingerprint
from appwire.domain import (
    AppWireException,
    ErrorContext,
    ErrorPayload,
    IContainer,
    IResponseRenderer,
    ServiceName,
    ThrottleDecision,
)


def create_fastapi_dependency(container: IContainer, name: str) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that resolves a named service.

    Args:
        container: The container to resolve the service from.
        name: The service name.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> get_mailer = create_fastapi_dependency(container, ServiceName.MAILER)
        >>>
        >>> @app.post("/contact")
        >>> def contact(mailer: Mailer = Depends(get_mailer)):
        ...     mailer.send(message)
    """

    def dependency() -> Any:
        """Resolve the service from the container."""
        return container.resolve(name)

    return dependency


def error_context_from_request(request: Request) -> ErrorContext:
    """Describe a request for the error dispatcher."""
    accept = request.headers.get("accept", "")
    wants_json = "application/json" in accept or request.headers.get("x-requested-with") == "XMLHttpRequest"
    return ErrorContext(path=request.url.path, method=request.method, wants_json=wants_json)


class FastAPIResponseRenderer(IResponseRenderer):
    """Renders error payloads as JSON for API clients and as HTML otherwise."""

    def render(self, payload: ErrorPayload, context: ErrorContext) -> Response:
        if context.wants_json:
            body: Dict[str, Any] = {"title": payload.title, "description": payload.message}
            if payload.details is not None:
                body["details"] = payload.details
            return JSONResponse(body, status_code=payload.status_code, headers=payload.headers or None)

        parts = [
            f"<html><head><title>{html.escape(payload.title)}</title></head><body>",
            f"<h1>{html.escape(payload.title)}</h1>",
            f"<p>{html.escape(payload.message)}</p>",
        ]
        if payload.details is not None:
            parts.append(f"<pre>{html.escape(''.join(payload.details.get('trace', [])))}</pre>")
        parts.append("</body></html>")
        return HTMLResponse("".join(parts), status_code=payload.status_code, headers=payload.headers or None)


def install_exception_handlers(app: FastAPI, container: IContainer) -> ExceptionHandlerManager:
    """Route uncaught exceptions of a FastAPI app through the error handler service.

    Installs a ``FastAPIResponseRenderer`` on the manager unless a renderer is
    already set.

    Returns:
        The error handler manager.

    Example:
        >>> container = bootstrap([CoreServicesProvider()])
        >>> app = FastAPI()
        >>> install_exception_handlers(app, container)
    """
    manager: ExceptionHandlerManager = container.resolve(ServiceName.ERROR_HANDLER)
    if manager.renderer is None:
        manager.set_renderer(FastAPIResponseRenderer())

    async def handle_exception(request: Request, exc: Exception) -> Response:
        result = manager.handle(exc, error_context_from_request(request))
        if isinstance(result, ErrorPayload):
            return PlainTextResponse(result.message, status_code=result.status_code)
        return result

    app.add_exception_handler(AppWireException, handle_exception)
    app.add_exception_handler(Exception, handle_exception)
    return manager


def _client_data(request: Request) -> Mapping[str, Any]:
    return {"ip": request.client.host if request.client else None}


def create_throttle_dependency(
    container: IContainer,
    throttle_type: str,
    request_data: Callable[[Request], Mapping[str, Any]] = _client_data,
) -> Callable[[Request], ThrottleDecision]:
    """Create a FastAPI dependency that throttles an endpoint.

    Every call is recorded as an attempt. Denied calls raise a 429 with a
    ``Retry-After`` header.

    Args:
        container: Container providing the throttler service.
        throttle_type: The throttle type whose rule applies.
        request_data: Extracts the data identifying the subject; the client IP by default.

    Example:
        >>> throttle_sign_in = create_throttle_dependency(
        ...     container, "sign_in_attempt", lambda request: {"user": request.query_params.get("user")}
        ... )
        >>>
        >>> @app.post("/sign-in", dependencies=[Depends(throttle_sign_in)])
        >>> def sign_in(): ...
    """

    def throttle(request: Request) -> ThrottleDecision:
        throttler = container.resolve(ServiceName.THROTTLER)
        decision = throttler.attempt(throttle_type, request_fingerprint(request_data(request)))
        if not decision.allowed:
            retry_after = _retry_after(decision)
            raise HTTPException(
                status_code=429,
                detail=f"Too many attempts. Please wait {retry_after} seconds before trying again.",
                headers={"Retry-After": str(retry_after)},
            )
        return decision

    return throttle


def _retry_after(decision: ThrottleDecision) -> int:
    if decision.delay_until is None:
        return 0
    now = datetime.now(timezone.utc)
    return max(math.ceil(decision.seconds_remaining(now)), 1)
