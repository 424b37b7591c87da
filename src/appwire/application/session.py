"""Application layer - Session wrapper."""

import uuid
from typing import Any, Dict, Mapping, Optional

import structlog

from appwire.domain import ISessionHandler

logger = structlog.get_logger(__name__)


class Session:
    """Key-value session data persisted through an ``ISessionHandler``.

    Attributes:
        handler: Storage for session data.
        config: The ``session`` configuration section (``name``, ``minutes``, ...).
    """

    def __init__(self, handler: ISessionHandler, config: Optional[Mapping[str, Any]] = None) -> None:
        self.handler = handler
        self.config = dict(config or {})
        self._id: Optional[str] = None
        self._data: Dict[str, Any] = {}
        self._started = False

    @property
    def id(self) -> Optional[str]:
        """Identifier of the started session, or None before ``start``."""
        return self._id

    @property
    def name(self) -> str:
        """Session name from ``session.name``, ``appwire`` by default."""
        return self.config.get("name", "appwire")

    def is_started(self) -> bool:
        """Whether ``start`` has loaded or begun the session."""
        return self._started

    def start(self, session_id: Optional[str] = None) -> None:
        """Load an existing session, or begin a new one when no id is given."""
        self._id = session_id or uuid.uuid4().hex
        self._data = dict(self.handler.read(self._id))
        self._started = True
        logger.debug("Session started", session=self.name)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under a key, or ``default``."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a value under a key. Nothing is persisted until ``save``."""
        self._data[key] = value

    def has(self, key: str) -> bool:
        """Whether a value is stored under the key."""
        return key in self._data

    def forget(self, key: str) -> None:
        """Remove a key, ignoring missing ones."""
        self._data.pop(key, None)

    def all(self) -> Dict[str, Any]:
        """Copy of every stored value."""
        return dict(self._data)

    def save(self) -> None:
        """Persist the data through the handler.

        Raises:
            RuntimeError: If the session has not been started.
        """
        if not self._started or self._id is None:
            raise RuntimeError("Cannot save a session that has not been started")
        self.handler.write(self._id, self._data)

    def destroy(self) -> None:
        """Delete the session from the handler and reset this object to unstarted."""
        if self._id is not None:
            self.handler.destroy(self._id)
        self._data = {}
        self._id = None
        self._started = False
