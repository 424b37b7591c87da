"""Session persistence handlers."""

import json
import re
import time
from pathlib import Path
from typing import Any, Dict

from appwire.domain import ICacheStore, ISessionHandler

_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class NullSessionHandler(ISessionHandler):
    """Keeps nothing; every session starts empty."""

    def read(self, session_id: str) -> Dict[str, Any]:
        return {}

    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        return None

    def destroy(self, session_id: str) -> None:
        return None


class FileSessionHandler(ISessionHandler):
    """One JSON file per session, expiring ``minutes`` after the last write."""

    def __init__(self, directory: Path, minutes: float = 120) -> None:
        self.directory = Path(directory)
        self.minutes = minutes
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        if not _SESSION_ID.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"sess_{session_id}.json"

    def read(self, session_id: str) -> Dict[str, Any]:
        path = self._path(session_id)
        try:
            if path.stat().st_mtime + self.minutes * 60 < time.time():
                path.unlink(missing_ok=True)
                return {}
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}

    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        self._path(session_id).write_text(json.dumps(data), encoding="utf-8")

    def destroy(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)


class CacheSessionHandler(ISessionHandler):
    """Sessions stored in the cache service."""

    def __init__(self, cache: ICacheStore, minutes: float = 120) -> None:
        self.cache = cache
        self.minutes = minutes

    def read(self, session_id: str) -> Dict[str, Any]:
        return dict(self.cache.get(f"session.{session_id}", {}))

    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        self.cache.put(f"session.{session_id}", dict(data), ttl=self.minutes * 60)

    def destroy(self, session_id: str) -> None:
        self.cache.forget(f"session.{session_id}")
