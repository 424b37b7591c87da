"""Application layer - Role to class indirection."""

import importlib
from typing import Any, Dict, List, Union

import structlog

from appwire.domain import IClassMapper, RoleBinding, UnknownRoleError

logger = structlog.get_logger(__name__)


def import_class(path: str) -> type:
    """Import a class from ``"package.module.ClassName"`` or ``"package.module:ClassName"``.

    Raises:
        ImportError: If the module cannot be imported or does not define the class.
    """
    if ":" in path:
        module_name, _, class_name = path.partition(":")
    else:
        module_name, _, class_name = path.rpartition(".")
    if not module_name or not class_name:
        raise ImportError(f"'{path}' is not a dotted class path")

    module = importlib.import_module(module_name)
    try:
        cls = getattr(module, class_name)
    except AttributeError as e:
        raise ImportError(f"Module '{module_name}' has no attribute '{class_name}'") from e
    if not isinstance(cls, type):
        raise ImportError(f"'{path}' does not name a class")
    return cls


class ClassMapper(IClassMapper):
    """Maps logical role names to the classes implementing them.

    Code that needs "the current implementation of role X" asks the mapper
    instead of naming a class, so later registration phases can swap the
    implementation by calling ``set_class_mapping`` again. The last mapping
    set for a role wins.

    Implementations may be given as classes or as dotted import paths; paths
    are imported on first lookup.

    Example:
        >>> mapper = ClassMapper()
        >>> mapper.set_class_mapping("throttle_store", InMemoryAttemptStore)
        >>> store = mapper.create_instance("throttle_store")
    """

    def __init__(self) -> None:
        self._bindings: Dict[str, RoleBinding] = {}

    def set_class_mapping(self, role: str, implementation: Union[type, str]) -> None:
        """Bind a role to a class or a dotted class path.

        Args:
            role: The role name.
            implementation: Class, or dotted import path of the class.
        """
        if role in self._bindings:
            logger.debug("Overriding class mapping", role=role, implementation=str(implementation))
        self._bindings[role] = RoleBinding(role=role, implementation=implementation)

    def get_class_mapping(self, role: str) -> type:
        """Return the class bound to a role.

        Args:
            role: The role name.

        Raises:
            UnknownRoleError: If the role is unbound or its class path cannot be imported.
        """
        binding = self._bindings.get(role)
        if binding is None:
            raise UnknownRoleError(role)

        implementation = binding.implementation
        if isinstance(implementation, type):
            return implementation

        try:
            cls = import_class(implementation)
        except ImportError as e:
            raise UnknownRoleError(role, f"cannot import '{implementation}': {e}") from e

        # Remember the imported class so the path is only imported once
        self._bindings[role] = RoleBinding(role=role, implementation=cls)
        return cls

    def has_mapping(self, role: str) -> bool:
        return role in self._bindings

    def roles(self) -> List[str]:
        return sorted(self._bindings)

    def create_instance(self, role: str, *args: Any, **kwargs: Any) -> Any:
        """Instantiate the class bound to a role, forwarding constructor arguments."""
        cls = self.get_class_mapping(role)
        return cls(*args, **kwargs)

    def call_static(self, role: str, method: str, *args: Any, **kwargs: Any) -> Any:
        """Call a class-level method of the class bound to a role.

        Raises:
            UnknownRoleError: If the role is unbound.
            AttributeError: If the class has no such method.
        """
        cls = self.get_class_mapping(role)
        return getattr(cls, method)(*args, **kwargs)
