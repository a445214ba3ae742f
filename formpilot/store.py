"""Durable key-value store (JSON on disk with file locking) for state that must survive navigation."""
from __future__ import annotations

import fcntl
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from formpilot.log import get_logger

log = get_logger(__name__)

SNAPSHOT_KEY = "formpilot_job_snapshot"
ATTACHMENTS_KEY = "formpilot_attachments"
CONFIG_KEY = "formpilot_flow_config"


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """In-process store; values are JSON round-tripped so callers never share mutable state."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else default

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class JsonFileStore(KeyValueStore):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            raw = f.read()
            _unlock(f)
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            log.warning("Ignoring unreadable store %s: %s", self.path.name, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _update(self, key: str, value: Any, *, remove: bool = False) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a+", encoding="utf-8") as f:
            _lock(f)
            f.seek(0)
            raw = f.read()
            try:
                data = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError:
                data = {}
            if remove:
                data.pop(key, None)
            else:
                data[key] = value
            f.seek(0)
            f.truncate()
            json.dump(data, f, indent=2)
            _unlock(f)

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._update(key, value)
        log.debug("Stored %s → %s", key, self.path.name)

    def delete(self, key: str) -> None:
        self._update(key, None, remove=True)
