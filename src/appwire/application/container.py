import threading
from typing import Any, Callable, Dict, List

import structlog

from appwire.application.circular_detector import CircularDependencyDetector
from appwire.application.lifetime_manager import LifetimeManager
from appwire.domain import (
    IContainer,
    Lifetime,
    ServiceEntry,
    ServiceRegistration,
    UnknownServiceError,
)

logger = structlog.get_logger(__name__)


def _service_key(name: Any) -> str:
    # ServiceName members render as their value
    return str(name)


def _chain_factory(
    previous: Callable[[IContainer], Any],
    wrapper: Callable[[Any, IContainer], Any],
) -> Callable[[IContainer], Any]:
    """Build a factory that feeds the result of ``previous`` into ``wrapper``."""

    def extended_factory(container: IContainer) -> Any:
        return wrapper(previous(container), container)

    return extended_factory


class ServiceContainer(IContainer):
    """Registry of named, lazily built services.

    Services are registered as factories receiving the container. Singleton
    services are built on first resolution and cached; transient services are
    built on every resolution. Registered factories can be wrapped with
    ``extend`` so later registration phases build on earlier ones.

    Attributes:
        _registry: Dictionary mapping service names to their entries.
        _lifetime_manager: Component managing instance lifetimes.
        _circular_detector: Component detecting circular dependencies.
    """

    def __init__(self) -> None:
        """Initialize the container with an empty registry."""
        self._registry: Dict[str, ServiceEntry] = {}
        self._registry_lock = threading.RLock()
        self._lifetime_manager = LifetimeManager()
        self._circular_detector = CircularDependencyDetector()

    def register(
        self,
        name: str,
        factory: Callable[[IContainer], Any],
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Register a service factory.

        Registering a name again replaces its factory and drops any cached instance.

        Args:
            name: The service name.
            factory: Function receiving the container and returning the instance.
            lifetime: How long the built instance should live.

        Example:
            >>> container.register("config", build_config)
            >>> container.register("session", build_session)
        """
        key = _service_key(name)
        registration = ServiceRegistration(name=key, factory=factory, lifetime=lifetime)

        with self._registry_lock:
            if key in self._registry:
                logger.debug("Replacing service registration", service=key)
            self._registry[key] = ServiceEntry(registration=registration)

    def register_singletons(self, services: Dict[str, Callable[[IContainer], Any]]) -> None:
        """Register multiple singleton services at once.

        Args:
            services: Dictionary mapping service names to factories.

        Example:
            >>> container.register_singletons({
            ...     "config": lambda c: ConfigRepository({"cache": {"driver": "array"}}),
            ...     "cache": lambda c: ArrayCacheStore(),
            ... })
        """
        for name, factory in services.items():
            self.register(name, factory, Lifetime.SINGLETON)

    def register_transients(self, services: Dict[str, Callable[[IContainer], Any]]) -> None:
        """Register multiple transient services at once.

        Args:
            services: Dictionary mapping service names to factories.
        """
        for name, factory in services.items():
            self.register(name, factory, Lifetime.TRANSIENT)

    def extend(self, name: str, wrapper: Callable[[Any, IContainer], Any]) -> None:
        """Wrap the factory of a registered service.

        The registered factory is replaced by one that builds the previous
        instance and hands it to ``wrapper`` together with the container.
        The lifetime is kept and any cached instance is dropped.

        Args:
            name: The service name.
            wrapper: Function receiving the previous instance and the container.

        Raises:
            UnknownServiceError: If no service is registered under the name.

        Example:
            >>> def add_admin_roles(class_mapper, container):
            ...     class_mapper.set_class_mapping("user_sprunje", UserSprunje)
            ...     return class_mapper
            >>> container.extend("class_mapper", add_admin_roles)
        """
        key = _service_key(name)

        with self._registry_lock:
            if key not in self._registry:
                raise UnknownServiceError(key)

            previous = self._registry[key].registration
            registration = previous.model_copy(update={"factory": _chain_factory(previous.factory, wrapper)})
            self._registry[key] = ServiceEntry(registration=registration)

        logger.debug("Service extended", service=key)

    def resolve(self, name: str) -> Any:
        """Resolve and return the instance of a named service.

        Args:
            name: The service name.

        Returns:
            The service instance; the cached one for singletons.

        Raises:
            UnknownServiceError: If no service is registered under the name.
            CircularDependencyError: If the service's factory resolves itself.

        Example:
            >>> throttler = container.resolve(ServiceName.THROTTLER)
        """
        key = _service_key(name)
        entry = self._registry.get(key)
        if entry is None:
            raise UnknownServiceError(key)

        with self._circular_detector.resolving(key):
            instance = self._lifetime_manager.get_or_create(
                entry,
                lambda: entry.registration.factory(self),
            )
            entry.resolution_count += 1
            return instance

    def has(self, name: str) -> bool:
        """Whether a service is registered under the name."""
        return _service_key(name) in self._registry

    def reset(self, name: str) -> None:
        """Drop the cached instance of a service so it is rebuilt on next resolution.

        Raises:
            UnknownServiceError: If no service is registered under the name.
        """
        key = _service_key(name)
        entry = self._registry.get(key)
        if entry is None:
            raise UnknownServiceError(key)
        self._lifetime_manager.clear_cache(entry)

    def names(self) -> List[str]:
        """Names of all registered services, in registration order."""
        return list(self._registry)

    def get_registry_copy(self) -> Dict[str, ServiceEntry]:
        """Copy the registrations into fresh entries without cached instances.

        Returns:
            Mapping of service names to new entries sharing the registrations.
        """
        with self._registry_lock:
            return {key: ServiceEntry(registration=entry.registration) for key, entry in self._registry.items()}

    def set_registry(self, registry: Dict[str, ServiceEntry]) -> None:
        """Replace the registry, e.g. with a copy taken from another container."""
        with self._registry_lock:
            self._registry = registry

    def clear(self) -> None:
        """Clear all registrations and cached instances.

        Useful for testing or resetting the container state.
        """
        with self._registry_lock:
            self._registry.clear()
        self._circular_detector.clear()
