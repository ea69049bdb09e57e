"""Key-value stores backing the on-disk caches and the provider-health record.

``JsonFileStore`` keeps one JSON object per file and rewrites it through a
temp file plus ``os.replace`` so a crash never leaves a torn file behind.
Workers in the same process share one store instance; the lock serializes
the read-modify-write cycle.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterator

from .errors import OutputReadError, OutputWriteError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> dict[str, Any] | None: ...

    @abstractmethod
    def put(self, key: str, entry: dict[str, Any]) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def items(self) -> Iterator[tuple[str, dict[str, Any]]]: ...

    def purge(self, predicate) -> int:
        doomed = [key for key, entry in self.items() if predicate(entry)]
        for key in doomed:
            self.delete(key)
        return len(doomed)


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self._data: dict[str, dict[str, Any]] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._data.get(key)
            return dict(entry) if entry is not None else None

    def put(self, key: str, entry: dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = dict(entry)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def items(self) -> Iterator[tuple[str, dict[str, Any]]]:
        with self._lock:
            snapshot = list(self._data.items())
        return iter(snapshot)


class JsonFileStore(KeyValueStore):
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as exc:
            logger.warning("Discarding corrupt store %s: %s", self.path, exc)
            return {}
        except OSError as exc:
            raise OutputReadError(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            return {}
        return {k: v for k, v in payload.items() if isinstance(v, dict)}

    def _save(self, data: dict[str, dict[str, Any]]) -> None:
        try:
            write_json_atomic(self.path, data)
        except OSError as exc:
            raise OutputWriteError(f"cannot write {self.path}: {exc}") from exc

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            return self._load().get(key)

    def put(self, key: str, entry: dict[str, Any]) -> None:
        with self._lock:
            data = self._load()
            data[key] = entry
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)

    def items(self) -> Iterator[tuple[str, dict[str, Any]]]:
        with self._lock:
            snapshot = list(self._load().items())
        return iter(snapshot)

    def purge(self, predicate) -> int:
        with self._lock:
            data = self._load()
            kept = {k: v for k, v in data.items() if not predicate(v)}
            removed = len(data) - len(kept)
            if removed:
                self._save(kept)
        return removed


def write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def is_expired(entry: dict[str, Any], now: datetime | None = None) -> bool:
    raw = entry.get("expires_at")
    if not raw:
        return True
    try:
        expires = datetime.fromisoformat(str(raw))
    except ValueError:
        return True
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)
    return expires <= (now or datetime.now(UTC))


def purge_expired(store: KeyValueStore, now: datetime | None = None) -> int:
    moment = now or datetime.now(UTC)
    return store.purge(lambda entry: is_expired(entry, moment))


def cache_stats(store: KeyValueStore, now: datetime | None = None) -> dict[str, int]:
    moment = now or datetime.now(UTC)
    total = valid = 0
    for _, entry in store.items():
        total += 1
        if not is_expired(entry, moment):
            valid += 1
    return {"total": total, "valid": valid, "expired": total - valid}
