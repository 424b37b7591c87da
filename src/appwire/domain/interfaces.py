from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from appwire.domain.enums import Lifetime
from appwire.domain.models import AttemptRecord, ErrorContext, ErrorPayload, MailMessage, ServiceEntry


class IContainer(ABC):
    """Abstract interface for service container operations."""

    @abstractmethod
    def register(
        self,
        name: str,
        factory: Callable[["IContainer"], Any],
        lifetime: Lifetime = Lifetime.SINGLETON,
    ) -> None:
        """Register a service factory under a name.

        Args:
            name: The service name.
            factory: Function receiving the container and returning the instance.
            lifetime: How long the built instance should live.
        """

    @abstractmethod
    def extend(self, name: str, wrapper: Callable[[Any, "IContainer"], Any]) -> None:
        """Wrap the factory of an already registered service.

        Args:
            name: The service name.
            wrapper: Function receiving the previous instance and the container.
        """

    @abstractmethod
    def resolve(self, name: str) -> Any:
        """Resolve and return the instance of a named service.

        Args:
            name: The service name.
        """

    @abstractmethod
    def has(self, name: str) -> bool:
        """Whether a service is registered under the name."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all registrations and instances from the container."""

    @abstractmethod
    def get_registry_copy(self) -> Dict[str, ServiceEntry]:
        """Get a copy of the current registry of services."""


class ILifetimeManager(ABC):
    """Abstract interface for managing service lifetimes."""

    @abstractmethod
    def get_or_create(self, entry: ServiceEntry, factory: Callable[[], Any]) -> Any:
        """Get existing instance or create a new one based on lifetime.

        Args:
            entry: The service entry containing registration info and cache.
            factory: A callable to create a new instance if needed.
        """


class IClassMapper(ABC):
    """Abstract interface mapping logical roles to classes."""

    @abstractmethod
    def set_class_mapping(self, role: str, implementation: Union[type, str]) -> None:
        """Bind a role to a class or dotted class path."""

    @abstractmethod
    def get_class_mapping(self, role: str) -> type:
        """Return the class currently bound to a role."""

    @abstractmethod
    def create_instance(self, role: str, *args: Any, **kwargs: Any) -> Any:
        """Instantiate the class bound to a role."""


class IAttemptStore(ABC):
    """Storage contract for throttle attempt histories."""

    @abstractmethod
    def get_record(self, key: str) -> Optional[AttemptRecord]:
        """Return the attempt history stored under a key, if any."""

    @abstractmethod
    def add_attempt(self, key: str, timestamp: datetime) -> None:
        """Append an attempt time to the history stored under a key."""

    @abstractmethod
    def prune(self, key: str, before: datetime) -> None:
        """Drop attempts older than ``before``; delete the record when nothing is left."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the whole history stored under a key."""


class ICacheStore(ABC):
    """Key-value cache contract."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return a cached value, or ``default`` when missing or expired."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, optionally expiring after ``ttl`` seconds."""

    @abstractmethod
    def forget(self, key: str) -> None:
        """Remove a value."""

    @abstractmethod
    def flush(self) -> None:
        """Remove every value."""


class ISessionHandler(ABC):
    """Session persistence contract."""

    @abstractmethod
    def read(self, session_id: str) -> Dict[str, Any]:
        """Load the data of a session."""

    @abstractmethod
    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        """Persist the data of a session."""

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        """Delete a session."""


class IResponseRenderer(ABC):
    """Turns an error payload into a framework response."""

    @abstractmethod
    def render(self, payload: ErrorPayload, context: ErrorContext) -> Any:
        """Build the response for an error payload."""


class IMailTransport(ABC):
    """Delivers mail messages."""

    @abstractmethod
    def send(self, message: MailMessage) -> None:
        """Deliver a message."""


class IMigrationRepository(ABC):
    """Tracks which migrations have run."""

    @abstractmethod
    def repository_exists(self) -> bool:
        """Whether the backing table exists."""

    @abstractmethod
    def create_repository(self) -> None:
        """Create the backing table."""

    @abstractmethod
    def get_ran(self) -> List[str]:
        """Names of migrations that already ran, in run order."""

    @abstractmethod
    def log(self, migration: str, batch: int) -> None:
        """Record that a migration ran in a batch."""

    @abstractmethod
    def get_next_batch_number(self) -> int:
        """Batch number for the next run."""


class IServicesProvider(ABC):
    """A unit of service registrations applied to a container."""

    @abstractmethod
    def register(self, container: IContainer) -> None:
        """Register or extend services on the container."""
