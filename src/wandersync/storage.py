"""Durable on-device key-value storage.

A flat string-keyed store, the same shape as a browser ``localStorage``:
values are strings, and callers serialize their own payloads. Writes are
durable once ``set_item`` returns.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from wandersync.exceptions import StorageUnavailableError

_logger = logging.getLogger(__name__)


class LocalStore(Protocol):
    """Structural interface for local persistence.

    Implementations raise :class:`StorageUnavailableError` when the backing
    medium cannot be read or written.
    """

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStore:
    """Dict-backed store for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStore:
    """Store persisted as one JSON object in a file.

    Every write rewrites the file through a temporary sibling and
    ``os.replace``, so readers never observe a half-written file.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._items: dict[str, str] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._items is not None:
            return self._items
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._items = {}
            return self._items
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageUnavailableError(f"Cannot read {self._path}: {exc}") from exc

        try:
            loaded = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError(f"Store file {self._path} is not valid JSON") from exc
        if not isinstance(loaded, dict):
            raise StorageUnavailableError(f"Store file {self._path} does not hold a JSON object")

        self._items = {str(k): v for k, v in loaded.items() if isinstance(v, str)}
        return self._items

    def _flush(self, items: dict[str, str]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(items, handle, separators=(",", ":"))
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot write {self._path}: {exc}") from exc
        _logger.debug("Flushed %d keys to %s", len(items), self._path)

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        updated = dict(self._load())
        updated[key] = value
        self._flush(updated)
        self._items = updated

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key not in items:
            return
        updated = {k: v for k, v in items.items() if k != key}
        self._flush(updated)
        self._items = updated
