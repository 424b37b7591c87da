"""Attempt and cache stores."""

import hashlib
import json
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from appwire.domain import AttemptRecord, IAttemptStore, ICacheStore, IMigrationRepository


class InMemoryAttemptStore(IAttemptStore):
    """Process-local attempt histories."""

    def __init__(self) -> None:
        self._records: Dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def get_record(self, key: str) -> Optional[AttemptRecord]:
        with self._lock:
            record = self._records.get(key)
            return record.model_copy(deep=True) if record is not None else None

    def add_attempt(self, key: str, timestamp: datetime) -> None:
        with self._lock:
            record = self._records.setdefault(key, AttemptRecord(key=key))
            record.timestamps.append(timestamp)
            record.timestamps.sort()

    def prune(self, key: str, before: datetime) -> None:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return
            record.timestamps = [ts for ts in record.timestamps if ts >= before]
            if not record.timestamps:
                del self._records[key]

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._records)


class ArrayCacheStore(ICacheStore):
    """Process-local cache."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self._items: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._items.get(self.prefix + key)
            if item is None:
                return default
            value, expires_at = item
            if expires_at is not None and expires_at <= time.time():
                del self._items[self.prefix + key]
                return default
            return value

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = time.time() + ttl if ttl is not None else None
        with self._lock:
            self._items[self.prefix + key] = (value, expires_at)

    def forget(self, key: str) -> None:
        with self._lock:
            self._items.pop(self.prefix + key, None)

    def flush(self) -> None:
        with self._lock:
            self._items.clear()


class FileCacheStore(ICacheStore):
    """Cache kept as one JSON file per key. Values must be JSON serializable."""

    def __init__(self, directory: Path, prefix: str = "") -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha1((self.prefix + key).encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        try:
            item = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return default
        expires_at = item.get("expires_at")
        if expires_at is not None and expires_at <= time.time():
            path.unlink(missing_ok=True)
            return default
        return item["value"]

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = time.time() + ttl if ttl is not None else None
        self._path(key).write_text(json.dumps({"expires_at": expires_at, "value": value}), encoding="utf-8")

    def forget(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def flush(self) -> None:
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)


class InMemoryMigrationRepository(IMigrationRepository):
    """Migration log kept in memory under a table name."""

    def __init__(self, table: str = "migrations") -> None:
        self.table = table
        self._exists = False
        self._rows: List[Dict[str, Any]] = []

    def repository_exists(self) -> bool:
        return self._exists

    def create_repository(self) -> None:
        self._exists = True

    def get_ran(self) -> List[str]:
        return [row["migration"] for row in self._rows]

    def log(self, migration: str, batch: int) -> None:
        self._rows.append({"migration": migration, "batch": batch})

    def get_next_batch_number(self) -> int:
        return max((row["batch"] for row in self._rows), default=0) + 1
