"""
Domain layer - Core models, errors and contracts.

This layer contains the value objects, error taxonomy and abstract interfaces
shared by the container, the class mapper, the throttler and the error dispatcher.
It has no dependencies on other layers.
"""

from .enums import AlertStorage, CacheDriver, Lifetime, ServiceName, SessionHandlerKind, ThrottleMethod
from .exceptions import (
    AppWireException,
    BadRequestException,
    CircularDependencyError,
    HandlerNotFoundError,
    HttpException,
    MailerException,
    NotFoundException,
    ThrottleConfigError,
    UnknownRoleError,
    UnknownServiceError,
    UnsupportedDriverError,
)
from .interfaces import (
    IAttemptStore,
    ICacheStore,
    IClassMapper,
    IContainer,
    ILifetimeManager,
    IMailTransport,
    IMigrationRepository,
    IResponseRenderer,
    IServicesProvider,
    ISessionHandler,
)
from .models import (
    Alert,
    AttemptRecord,
    ErrorContext,
    ErrorPayload,
    HandlerBinding,
    MailMessage,
    RoleBinding,
    ServiceEntry,
    ServiceRegistration,
    ThrottleDecision,
    ThrottleRule,
    parse_duration,
)

# Rebuild Pydantic models to resolve forward references
ServiceRegistration.model_rebuild()
ServiceEntry.model_rebuild()

__all__ = [
    # Enums
    "Lifetime",
    "ServiceName",
    "CacheDriver",
    "SessionHandlerKind",
    "AlertStorage",
    "ThrottleMethod",
    # Exceptions
    "AppWireException",
    "CircularDependencyError",
    "UnknownServiceError",
    "UnknownRoleError",
    "UnsupportedDriverError",
    "ThrottleConfigError",
    "HandlerNotFoundError",
    "HttpException",
    "BadRequestException",
    "NotFoundException",
    "MailerException",
    # Interfaces
    "IContainer",
    "ILifetimeManager",
    "IClassMapper",
    "IAttemptStore",
    "ICacheStore",
    "ISessionHandler",
    "IResponseRenderer",
    "IMailTransport",
    "IMigrationRepository",
    "IServicesProvider",
    # Models
    "ServiceRegistration",
    "ServiceEntry",
    "RoleBinding",
    "ThrottleRule",
    "ThrottleDecision",
    "AttemptRecord",
    "HandlerBinding",
    "ErrorContext",
    "ErrorPayload",
    "MailMessage",
    "Alert",
    "parse_duration",
]
