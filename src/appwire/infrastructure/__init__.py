"""
Infrastructure layer - External integrations.

This layer contains settings, logging, storage backends, the core service
registrations and integrations with external frameworks and tools.
It depends on both Application and Domain layers.
"""

from . import fastapi_integration, testing
from .providers import ClassMappingsProvider, CoreServicesProvider, bootstrap
from .settings import AppSettings

__all__ = [
    "fastapi_integration",
    "testing",
    "AppSettings",
    "CoreServicesProvider",
    "ClassMappingsProvider",
    "bootstrap",
]
