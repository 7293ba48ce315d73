"""Persistent key-value storage for the last used secret and secret history.

Keys:
    key01   last secret used for a manual code
    keyAll  history, newline separated, most recent first, no duplicate
            lines, each line ``YYYY.M.D - SECRET``
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

LAST_SECRET_KEY = "key01"
HISTORY_KEY = "keyAll"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, for tests and throwaway sessions."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Store backed by a single JSON object on disk.

    Every write rewrites the whole file; there is only ever one writer.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.warning("Unreadable store at %s, starting empty", self.path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store at %s is not a JSON object, starting empty", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp.replace(self.path)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


def format_history_line(secret: str, on: date | None = None) -> str:
    d = on or date.today()
    return f"{d.year}.{d.month}.{d.day} - {secret}"


class SecretHistory:
    """The ``key01`` / ``keyAll`` layout on top of a KeyValueStore."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    @property
    def last_secret(self) -> str | None:
        return self.store.get(LAST_SECRET_KEY)

    def set_last_secret(self, secret: str) -> None:
        self.store.set(LAST_SECRET_KEY, secret)

    def lines(self) -> list[str]:
        text = (self.store.get(HISTORY_KEY) or "").strip()
        return text.split("\n") if text else []

    def remember(self, secret: str, on: date | None = None) -> list[str]:
        """Prepend a dated line for ``secret`` and drop duplicate lines.

        Lines are compared whole, so the same secret on another day is a
        separate entry.
        """
        merged = [format_history_line(secret, on), *self.lines()]
        unique = list(dict.fromkeys(merged))
        self.store.set(HISTORY_KEY, "\n".join(unique))
        return unique

    def clear(self) -> None:
        self.store.remove(HISTORY_KEY)
