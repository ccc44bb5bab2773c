"""
Storage - Key-value persistence for game statistics.

The only thing persisted is the win/loss/draw record; game state itself
lives in memory for the life of a session.

Design decisions:
- Values are JSON-compatible dicts
- MemoryStorage for tests and ephemeral servers
- JsonFileStorage writes one JSON file per key under a directory
"""

from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class Storage(Protocol):
    """Key-value store for JSON-compatible values."""

    def get(self, key: str) -> dict[str, Any] | None: ...

    def set(self, key: str, value: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage. Values are copied in and out."""

    def __init__(self):
        self._values: dict[str, str] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        raw = self._values.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        self._values[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._values)


class JsonFileStorage:
    """
    File-based storage, one JSON document per key.

    Usage:
        storage = JsonFileStorage("~/.dropfour")
        storage.set("connect4_stats", {"wins": 1, "losses": 0, "draws": 0})
        storage.get("connect4_stats")
    """

    def __init__(self, directory: str | Path | None = None):
        if directory is None:
            directory = Path.home() / ".dropfour"
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                value = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            # Unreadable entry, start over
            logger.warning("Discarding unreadable entry %s: %s", path, e)
            path.unlink(missing_ok=True)
            return None
        return value if isinstance(value, dict) else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump(value, f, indent=2)
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"
