from typing import Any, Callable

import structlog

from appwire.domain import ILifetimeManager, Lifetime, ServiceEntry

logger = structlog.get_logger(__name__)


class LifetimeManager(ILifetimeManager):
    """Manages instance lifetimes for singleton and transient services.

    Singleton instances are cached on their ``ServiceEntry``. Construction is
    guarded by the entry's lock so concurrent first resolutions run the factory
    only once. A factory that raises leaves nothing cached.
    """

    def get_or_create(self, entry: ServiceEntry, factory: Callable[[], Any]) -> Any:
        """Get existing instance or create new one based on lifetime.

        Args:
            entry: Service entry holding the registration and the cached instance.
            factory: Function to create new instance if needed.

        Returns:
            Instance according to lifetime rules:
            - Singleton: Returns cached instance or creates and caches new one
            - Transient: Always creates new instance

        Example:
            >>> entry = ServiceEntry(
            ...     registration=ServiceRegistration(name="cache", factory=lambda c: ArrayCacheStore())
            ... )
            >>> instance = manager.get_or_create(entry, lambda: ArrayCacheStore())
        """
        if entry.registration.lifetime == Lifetime.TRANSIENT:
            return factory()

        if entry.has_instance:
            return entry.cached_instance

        with entry.lock:
            # Another thread may have finished construction while we waited
            if not entry.has_instance:
                instance = factory()
                entry.store(instance)
                logger.debug("Service instance created", service=entry.registration.name)
            return entry.cached_instance

    def clear_cache(self, entry: ServiceEntry) -> None:
        """Drop the cached instance of an entry."""
        with entry.lock:
            entry.reset()
