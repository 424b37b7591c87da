"""
FastAPI integration module.

Provides helpers for wiring an appwire container into a FastAPI application.
"""

from .integration import (
    FastAPIResponseRenderer,
    create_fastapi_dependency,
    create_throttle_dependency,
    error_context_from_request,
    install_exception_handlers,
)

__all__ = [
    "create_fastapi_dependency",
    "create_throttle_dependency",
    "error_context_from_request",
    "install_exception_handlers",
    "FastAPIResponseRenderer",
]
