"""
Application layer - Use cases and orchestration.

This layer contains the container, the class mapper, the throttler, the error
dispatcher and the application services they wire together.
It depends only on the Domain layer.
"""

from .alerts import AlertStream, CacheAlertStream, SessionAlertStream
from .circular_detector import CircularDependencyDetector
from .class_mapper import ClassMapper
from .config import ConfigRepository
from .container import ServiceContainer
from .exception_handlers import (
    ExceptionHandler,
    ExceptionHandlerManager,
    HttpExceptionHandler,
    MailerExceptionHandler,
    NotFoundExceptionHandler,
)
from .lifetime_manager import LifetimeManager
from .mailer import Mailer
from .migrator import Migration, Migrator
from .seeder import BaseSeed, Seeder
from .session import Session
from .throttler import Throttler, request_fingerprint

__all__ = [
    "ServiceContainer",
    "LifetimeManager",
    "CircularDependencyDetector",
    "ClassMapper",
    "ConfigRepository",
    "Throttler",
    "request_fingerprint",
    "ExceptionHandlerManager",
    "ExceptionHandler",
    "HttpExceptionHandler",
    "NotFoundExceptionHandler",
    "MailerExceptionHandler",
    "Session",
    "AlertStream",
    "CacheAlertStream",
    "SessionAlertStream",
    "Mailer",
    "Migration",
    "Migrator",
    "BaseSeed",
    "Seeder",
]
