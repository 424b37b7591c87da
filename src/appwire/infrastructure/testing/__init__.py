"""
Testing utilities module.

Provides helpers for testing applications built on an appwire container.
"""

from .utilities import TestContainer, create_mock_container

__all__ = [
    "TestContainer",
    "create_mock_container",
]
