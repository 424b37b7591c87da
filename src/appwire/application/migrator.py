"""Application layer - Migration runner."""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence, Type

import structlog

from appwire.domain import IContainer, IMigrationRepository

logger = structlog.get_logger(__name__)


class Migration(ABC):
    """A schema change. ``name`` defaults to the class name."""

    def __init__(self, container: IContainer) -> None:
        self.container = container

    @classmethod
    def migration_name(cls) -> str:
        return getattr(cls, "name", None) or cls.__name__

    @abstractmethod
    def up(self) -> None:
        """Apply the change."""

    def down(self) -> None:
        """Revert the change."""


class Migrator:
    """Runs pending migrations and records them in the migration repository.

    Attributes:
        container: Handed to each migration.
        repository: Records which migrations already ran.
    """

    def __init__(self, container: IContainer, repository: IMigrationRepository) -> None:
        self.container = container
        self.repository = repository

    def repository_exists(self) -> bool:
        return self.repository.repository_exists()

    def get_repository(self) -> IMigrationRepository:
        return self.repository

    def pending(self, migrations: Sequence[Type[Migration]]) -> List[Type[Migration]]:
        """Migrations not yet recorded as ran, in the given order."""
        ran = set(self.repository.get_ran())
        return [migration for migration in migrations if migration.migration_name() not in ran]

    def run(self, migrations: Sequence[Type[Migration]]) -> List[str]:
        """Run every pending migration in one batch.

        Returns:
            Names of the migrations that ran.
        """
        pending = self.pending(migrations)
        if not pending:
            logger.info("Nothing to migrate")
            return []

        batch = self.repository.get_next_batch_number()
        ran: List[str] = []
        for migration_class in pending:
            name = migration_class.migration_name()
            migration: Any = migration_class(self.container)
            migration.up()
            self.repository.log(name, batch)
            ran.append(name)
            logger.info("Migrated", migration=name, batch=batch)
        return ran
