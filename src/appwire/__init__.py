"""
appwire: Service registration and bootstrap layer with late-bound, overridable components.

Public API exports for the appwire package.
"""

# Application exports
from appwire.application.class_mapper import ClassMapper
from appwire.application.container import ServiceContainer
from appwire.application.exception_handlers import ExceptionHandler, ExceptionHandlerManager
from appwire.application.throttler import Throttler

# Domain exports
from appwire.domain.enums import Lifetime, ServiceName, ThrottleMethod
from appwire.domain.exceptions import (
    AppWireException,
    CircularDependencyError,
    HandlerNotFoundError,
    ThrottleConfigError,
    UnknownRoleError,
    UnknownServiceError,
    UnsupportedDriverError,
)
from appwire.domain.models import ThrottleDecision, ThrottleRule

__version__ = "0.1.0"

__all__ = [
    # Container and components
    "ServiceContainer",
    "ClassMapper",
    "Throttler",
    "ExceptionHandlerManager",
    "ExceptionHandler",
    # Enums
    "Lifetime",
    "ServiceName",
    "ThrottleMethod",
    # Models
    "ThrottleRule",
    "ThrottleDecision",
    # Exceptions
    "AppWireException",
    "CircularDependencyError",
    "UnknownServiceError",
    "UnknownRoleError",
    "UnsupportedDriverError",
    "ThrottleConfigError",
    "HandlerNotFoundError",
]
