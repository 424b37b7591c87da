"""Core service registrations and container bootstrapping.

Each service is built by a named factory receiving the container. Factories
resolve what they need from the container rather than capturing it.
"""

import copy
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import structlog

from appwire.application.alerts import AlertStream, CacheAlertStream, SessionAlertStream
from appwire.application.class_mapper import ClassMapper
from appwire.application.config import ConfigRepository
from appwire.application.container import ServiceContainer
from appwire.application.exception_handlers import (
    ExceptionHandler,
    ExceptionHandlerManager,
    HttpExceptionHandler,
    MailerExceptionHandler,
    NotFoundExceptionHandler,
)
from appwire.application.mailer import Mailer
from appwire.application.migrator import Migrator
from appwire.application.seeder import Seeder
from appwire.application.session import Session
from appwire.application.throttler import Throttler
from appwire.domain import (
    AlertStorage,
    CacheDriver,
    HttpException,
    ICacheStore,
    IContainer,
    IMigrationRepository,
    IServicesProvider,
    Lifetime,
    MailerException,
    NotFoundException,
    ServiceName,
    SessionHandlerKind,
    UnsupportedDriverError,
)
from appwire.infrastructure.logging_config import create_channel_logger
from appwire.infrastructure.session_handlers import CacheSessionHandler, FileSessionHandler, NullSessionHandler
from appwire.infrastructure.settings import AppSettings
from appwire.infrastructure.stores import ArrayCacheStore, FileCacheStore

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "alert": {"storage": "session", "key": "site.alerts"},
    "cache": {"driver": "array", "prefix": "appwire"},
    "session": {"handler": "array", "name": "appwire", "minutes": 120},
    "mail": {"from": None, "smtp_debug": False},
    "debug": {"smtp": False, "queries": False},
    "migrations": {"repository_table": "migrations"},
    "throttles": {},
}

DEFAULT_CLASS_MAPPINGS: Dict[str, Union[type, str]] = {
    "throttle_store": "appwire.infrastructure.stores.InMemoryAttemptStore",
    "migration_repository": "appwire.infrastructure.stores.InMemoryMigrationRepository",
    "mail_transport": "appwire.infrastructure.mail.LogMailTransport",
    "exception_handler": ExceptionHandler,
}


def _driver(enum_type: Any, setting: str, value: Any) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        raise UnsupportedDriverError(setting, value) from None


def build_class_mapper(container: IContainer) -> ClassMapper:
    """Class mapper preloaded with ``DEFAULT_CLASS_MAPPINGS``."""
    class_mapper = ClassMapper()
    for role, implementation in DEFAULT_CLASS_MAPPINGS.items():
        class_mapper.set_class_mapping(role, implementation)
    return class_mapper


def build_cache(container: IContainer) -> ICacheStore:
    """Cache store selected by ``cache.driver``.

    Raises:
        UnsupportedDriverError: If the driver is neither ``array`` nor ``file``.
    """
    config = container.resolve(ServiceName.CONFIG)
    driver = _driver(CacheDriver, "cache.driver", config.get("cache.driver"))
    prefix = config.get("cache.prefix", "")

    if driver == CacheDriver.FILE:
        directory = config.get("cache.path") or container.resolve(ServiceName.SETTINGS).cache_dir
        return FileCacheStore(directory, prefix)
    return ArrayCacheStore(prefix)


def build_session(container: IContainer) -> Session:
    """A new, started session over the handler selected by ``session.handler``.

    Sessions are per user, so the service is transient: every resolution
    returns a fresh session with its own id. Call ``start(session_id)`` on it
    to load an existing session instead.

    Raises:
        UnsupportedDriverError: If the handler is not ``array``, ``file`` or ``cache``.
    """
    config = container.resolve(ServiceName.CONFIG)
    kind = _driver(SessionHandlerKind, "session.handler", config.get("session.handler"))
    minutes = config.get("session.minutes", 120)

    if kind == SessionHandlerKind.FILE:
        directory = config.get("session.path") or container.resolve(ServiceName.SETTINGS).session_dir
        handler: Any = FileSessionHandler(directory, minutes)
    elif kind == SessionHandlerKind.CACHE:
        handler = CacheSessionHandler(container.resolve(ServiceName.CACHE), minutes)
    else:
        handler = NullSessionHandler()

    session = Session(handler, config.get("session"))
    session.start()
    return session


def build_alerts(container: IContainer) -> AlertStream:
    """Alert stream stored as selected by ``alert.storage``, bound to a new session.

    Transient like the session it belongs to.

    Raises:
        UnsupportedDriverError: If the storage is neither ``cache`` nor ``session``.
    """
    config = container.resolve(ServiceName.CONFIG)
    storage = _driver(AlertStorage, "alert.storage", config.get("alert.storage"))
    key = config.get("alert.key", "site.alerts")

    if storage == AlertStorage.CACHE:
        session_id = container.resolve(ServiceName.SESSION).id if container.has(ServiceName.SESSION) else ""
        return CacheAlertStream(key, container.resolve(ServiceName.CACHE), session_id or "")
    return SessionAlertStream(key, container.resolve(ServiceName.SESSION))


def build_debug_logger(container: IContainer) -> Any:
    """Logger of the ``debug`` channel."""
    return create_channel_logger("debug")


def build_error_logger(container: IContainer) -> Any:
    """Logger of the ``errors`` channel, used by the error handler."""
    return create_channel_logger("errors")


def build_mail_logger(container: IContainer) -> Any:
    """Logger of the ``mail`` channel, used by the mailer."""
    return create_channel_logger("mail")


def build_query_logger(container: IContainer) -> Any:
    """Logger of the ``query`` channel."""
    return create_channel_logger("query")


def build_error_handler(container: IContainer) -> ExceptionHandlerManager:
    """Error dispatcher with the HTTP, not-found and mailer handlers registered.

    The default handler is the class mapped to the ``exception_handler`` role.

    Raises:
        HandlerNotFoundError: If the configuration leaves no default handler.
    """
    settings = container.resolve(ServiceName.SETTINGS)
    default_handler = container.resolve(ServiceName.CLASS_MAPPER).get_class_mapping("exception_handler")

    manager = ExceptionHandlerManager(
        container,
        display_error_details=settings.display_error_details,
        default_handler=default_handler,
    )
    manager.register_handler(HttpException, HttpExceptionHandler)
    manager.register_handler(NotFoundException, NotFoundExceptionHandler)
    manager.register_handler(MailerException, MailerExceptionHandler)
    manager.validate()
    return manager


def build_runtime_error_handler(container: IContainer) -> ExceptionHandlerManager:
    """The ``error_handler`` service under a second name."""
    return container.resolve(ServiceName.ERROR_HANDLER)


def build_mailer(container: IContainer) -> Mailer:
    """Mailer over the transport mapped to the ``mail_transport`` role.

    Transport debugging stays off unless ``debug.smtp`` is set.
    """
    config = container.resolve(ServiceName.CONFIG)
    transport = container.resolve(ServiceName.CLASS_MAPPER).create_instance("mail_transport")

    mail_config = dict(config.get("mail") or {})
    # debug.smtp overrides any transport-specific debug setting
    if not config.get("debug.smtp"):
        mail_config["smtp_debug"] = False

    return Mailer(transport, container.resolve(ServiceName.MAIL_LOGGER), mail_config)


def build_migration_repository(container: IContainer) -> IMigrationRepository:
    """Repository mapped to ``migration_repository``, named by ``migrations.repository_table``."""
    config = container.resolve(ServiceName.CONFIG)
    table = config.get("migrations.repository_table", "migrations")
    return container.resolve(ServiceName.CLASS_MAPPER).create_instance("migration_repository", table)


def build_migrator(container: IContainer) -> Migrator:
    """Migrator whose repository is created when it does not exist yet."""
    migrator = Migrator(container, container.resolve(ServiceName.MIGRATION_REPOSITORY))
    if not migrator.repository_exists():
        migrator.get_repository().create_repository()
    return migrator


def build_seeder(container: IContainer) -> Seeder:
    """Seeder resolving seed roles through the class mapper."""
    return Seeder(container)


def build_throttler(container: IContainer) -> Throttler:
    """Throttler over the ``throttle_store`` role, with rules from ``throttles``.

    Raises:
        ThrottleConfigError: If a rule definition is malformed.
    """
    config = container.resolve(ServiceName.CONFIG)
    store = container.resolve(ServiceName.CLASS_MAPPER).create_instance("throttle_store")

    throttler = Throttler(store)
    throttler.load_rules(config.get("throttles"))
    return throttler


class CoreServicesProvider(IServicesProvider):
    """Registers the core services.

    Attributes:
        config: Configuration merged over ``DEFAULT_CONFIG``.
        mode_config: Per-mode configuration merged last when ``settings.mode`` matches.
        settings: Settings to use instead of reading the environment.
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        mode_config: Optional[Mapping[str, Mapping[str, Any]]] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        self.config = copy.deepcopy(dict(config or {}))
        self.mode_config = copy.deepcopy(dict(mode_config or {}))
        self.settings = settings

    def build_settings(self, container: IContainer) -> AppSettings:
        """Settings given to the provider, or read from the environment, with logging applied."""
        settings = self.settings if self.settings is not None else AppSettings()
        settings.configure_logging()
        return settings

    def build_config(self, container: IContainer) -> ConfigRepository:
        """``DEFAULT_CONFIG`` merged with the provider configuration, then the current mode's."""
        settings = container.resolve(ServiceName.SETTINGS)

        config = ConfigRepository(DEFAULT_CONFIG)
        config.merge(self.config)
        if settings.mode and settings.mode in self.mode_config:
            config.merge(self.mode_config[settings.mode])
        config.set("site.mode", settings.mode)

        logger.debug("Configuration loaded", mode=settings.mode or "default")
        return config

    def register(self, container: IContainer) -> None:
        container.register(ServiceName.SETTINGS, self.build_settings)
        container.register(ServiceName.CONFIG, self.build_config)
        container.register(ServiceName.CLASS_MAPPER, build_class_mapper)
        container.register(ServiceName.CACHE, build_cache)
        container.register(ServiceName.SESSION, build_session, Lifetime.TRANSIENT)
        container.register(ServiceName.ALERTS, build_alerts, Lifetime.TRANSIENT)
        container.register(ServiceName.DEBUG_LOGGER, build_debug_logger)
        container.register(ServiceName.ERROR_LOGGER, build_error_logger)
        container.register(ServiceName.MAIL_LOGGER, build_mail_logger)
        container.register(ServiceName.QUERY_LOGGER, build_query_logger)
        container.register(ServiceName.ERROR_HANDLER, build_error_handler)
        container.register(ServiceName.RUNTIME_ERROR_HANDLER, build_runtime_error_handler)
        container.register(ServiceName.MAILER, build_mailer)
        container.register(ServiceName.MIGRATION_REPOSITORY, build_migration_repository)
        container.register(ServiceName.MIGRATOR, build_migrator)
        container.register(ServiceName.SEEDER, build_seeder)
        container.register(ServiceName.THROTTLER, build_throttler)


class ClassMappingsProvider(IServicesProvider):
    """Extends the class mapper with additional role bindings.

    Later providers override roles bound by earlier ones.

    Example:
        >>> container = bootstrap([
        ...     CoreServicesProvider(),
        ...     ClassMappingsProvider({"user_sprunje": "myapp.sprunje.UserSprunje"}),
        ... ])
    """

    def __init__(self, mappings: Mapping[str, Union[type, str]]) -> None:
        self.mappings = dict(mappings)

    def add_mappings(self, class_mapper: ClassMapper, container: IContainer) -> ClassMapper:
        for role, implementation in self.mappings.items():
            class_mapper.set_class_mapping(role, implementation)
        return class_mapper

    def register(self, container: IContainer) -> None:
        container.extend(ServiceName.CLASS_MAPPER, self.add_mappings)


def bootstrap(
    providers: Iterable[IServicesProvider],
    container: Optional[ServiceContainer] = None,
) -> ServiceContainer:
    """Apply service providers to a container, in order.

    Args:
        providers: Providers to apply; later ones may extend services of earlier ones.
        container: Container to register into; a new one by default.

    Returns:
        The populated container.
    """
    container = container if container is not None else ServiceContainer()
    for provider in providers:
        provider.register(container)
        logger.debug("Services provider registered", provider=type(provider).__name__)
    return container
