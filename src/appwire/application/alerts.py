"""Application layer - Flash message streams."""

from abc import ABC, abstractmethod
from typing import List

from appwire.application.session import Session
from appwire.domain import Alert, ICacheStore


class AlertStream(ABC):
    """Persists flash messages between requests under a storage key."""

    def __init__(self, message_key: str) -> None:
        self.message_key = message_key

    def add_message(self, type: str, message: str) -> "AlertStream":
        """Queue a message, e.g. ``add_message("danger", "Bad password")``."""
        messages = self.messages()
        messages.append(Alert(type=type, message=message))
        self._save(messages)
        return self

    def messages(self) -> List[Alert]:
        return [Alert.model_validate(item) for item in self._load()]

    def get_and_clear_messages(self) -> List[Alert]:
        messages = self.messages()
        self.reset()
        return messages

    def reset(self) -> None:
        self._save([])

    @abstractmethod
    def _load(self) -> List[dict]:
        """Stored messages, as plain dictionaries."""

    @abstractmethod
    def _store(self, items: List[dict]) -> None:
        """Replace the stored messages."""

    def _save(self, messages: List[Alert]) -> None:
        self._store([alert.model_dump() for alert in messages])


class CacheAlertStream(AlertStream):
    """Alert stream kept in the cache, scoped by session id when there is one."""

    def __init__(self, message_key: str, cache: ICacheStore, session_id: str = "") -> None:
        super().__init__(message_key)
        self.cache = cache
        self.session_id = session_id

    def _cache_key(self) -> str:
        if self.session_id:
            return f"{self.session_id}.{self.message_key}"
        return self.message_key

    def _load(self) -> List[dict]:
        return list(self.cache.get(self._cache_key(), []))

    def _store(self, items: List[dict]) -> None:
        self.cache.put(self._cache_key(), items)


class SessionAlertStream(AlertStream):
    """Alert stream kept in the session."""

    def __init__(self, message_key: str, session: Session) -> None:
        super().__init__(message_key)
        self.session = session

    def _load(self) -> List[dict]:
        return list(self.session.get(self.message_key, []))

    def _store(self, items: List[dict]) -> None:
        self.session.set(self.message_key, items)
        if self.session.is_started():
            self.session.save()
