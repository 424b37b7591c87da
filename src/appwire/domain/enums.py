from enum import Enum


class Lifetime(str, Enum):
    """Defines the lifetime of a service instance.

    Attributes:
        SINGLETON: Single instance built on first resolution and shared afterwards.
        TRANSIENT: New instance created on each resolution.
    """

    TRANSIENT = "transient"
    SINGLETON = "singleton"

    def __str__(self) -> str:
        return self.value


class ServiceName(str, Enum):
    """Names of the services registered by the core services provider."""

    SETTINGS = "settings"
    CONFIG = "config"
    CLASS_MAPPER = "class_mapper"
    CACHE = "cache"
    SESSION = "session"
    ALERTS = "alerts"
    DEBUG_LOGGER = "debug_logger"
    ERROR_LOGGER = "error_logger"
    MAIL_LOGGER = "mail_logger"
    QUERY_LOGGER = "query_logger"
    ERROR_HANDLER = "error_handler"
    RUNTIME_ERROR_HANDLER = "runtime_error_handler"
    MAILER = "mailer"
    MIGRATION_REPOSITORY = "migration_repository"
    MIGRATOR = "migrator"
    SEEDER = "seeder"
    THROTTLER = "throttler"

    def __str__(self) -> str:
        return self.value


class CacheDriver(str, Enum):
    """Cache store drivers selectable through ``cache.driver``."""

    ARRAY = "array"
    FILE = "file"


class SessionHandlerKind(str, Enum):
    """Session handlers selectable through ``session.handler``."""

    ARRAY = "array"
    FILE = "file"
    CACHE = "cache"


class AlertStorage(str, Enum):
    """Alert stream backends selectable through ``alert.storage``."""

    CACHE = "cache"
    SESSION = "session"


class ThrottleMethod(str, Enum):
    """How a throttle rule counts previous attempts.

    Attributes:
        SINGLE: Only the most recent attempt is taken into account.
        INTERVAL: Every attempt inside the trailing interval window counts.
    """

    SINGLE = "single"
    INTERVAL = "interval"

    def __str__(self) -> str:
        return self.value
