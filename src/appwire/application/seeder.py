"""Application layer - Database seeding."""

from abc import ABC, abstractmethod
from typing import Type, Union

import structlog

from appwire.domain import IContainer, ServiceName

logger = structlog.get_logger(__name__)


class BaseSeed(ABC):
    """Base class for seeds. Seeds receive the container to reach any service."""

    def __init__(self, container: IContainer) -> None:
        self.container = container

    @abstractmethod
    def run(self) -> None:
        """Execute the seed."""


class Seeder:
    """Runs seeds given as classes or as class-mapper roles."""

    def __init__(self, container: IContainer) -> None:
        self.container = container

    def get_seed_class(self, seed: Union[str, Type[BaseSeed]]) -> Type[BaseSeed]:
        """Resolve a seed role through the class mapper; classes are returned as-is.

        Raises:
            UnknownRoleError: If a role has no class mapped.
            TypeError: If the class is not a ``BaseSeed``.
        """
        if isinstance(seed, str):
            seed = self.container.resolve(ServiceName.CLASS_MAPPER).get_class_mapping(seed)
        if not (isinstance(seed, type) and issubclass(seed, BaseSeed)):
            raise TypeError(f"{seed!r} is not a BaseSeed subclass")
        return seed

    def execute(self, seed: Union[str, Type[BaseSeed]]) -> None:
        seed_class = self.get_seed_class(seed)
        seed_class(self.container).run()
        logger.info("Seed executed", seed=seed_class.__name__)
