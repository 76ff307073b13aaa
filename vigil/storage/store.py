"""Key/value persistence for the monitoring history blobs.

Every blob is a JSON array overwritten wholesale on each save; there is no
append-only log.  Services treat their in-memory state as authoritative and
only log a failed write.
"""

from __future__ import annotations

import abc
import asyncio
import json
import os
from pathlib import Path
from typing import Any

import structlog

from vigil.core.exceptions import StorageError

logger = structlog.get_logger(__name__)

# Logical keys written by the services.
ACTIVE_INCIDENTS_KEY = "active_incidents"
ALERT_HISTORY_KEY = "alert_history"
HEALTH_HISTORY_KEY = "health_check_history"
PERFORMANCE_HISTORY_KEY = "performance_validation_history"


class KeyValueStore(abc.ABC):
    """Base class for string blob stores."""

    @abc.abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored blob, or None if the key was never written."""

    @abc.abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Overwrite the blob stored under *key*."""

    async def ping(self) -> bool:
        """Return True if the store is usable."""
        return True

    async def close(self) -> None:
        """Release resources."""


class MemoryStore(KeyValueStore):
    """Process-local store; contents vanish with the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonDirectoryStore(KeyValueStore):
    """One ``<key>.json`` file per key inside *root*.

    Writes go to a temporary sibling first and are renamed into place, so a
    crash mid-write leaves the previous blob intact.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root / f"{key}.json"

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return await asyncio.to_thread(_read_text, path)
        except OSError as exc:
            raise StorageError(f"failed to read {path}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(_write_text_atomic, path, value)
        except OSError as exc:
            raise StorageError(f"failed to write {path}: {exc}") from exc

    async def ping(self) -> bool:
        return self._root.is_dir() and os.access(self._root, os.W_OK)


def _read_text(path: Path) -> str | None:
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def _write_text_atomic(path: Path, value: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".json.tmp")
    tmp.write_text(value, encoding="utf-8")
    os.replace(tmp, path)


def create_store(backend: str, path: str | Path) -> KeyValueStore:
    """Build the store named by the ``storage.backend`` config value."""
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        return JsonDirectoryStore(path)
    raise ValueError(f"unknown storage backend: {backend!r}")


# ── Helpers used by the services ────────────────────────────────


async def save_items(
    store: KeyValueStore | None,
    key: str,
    items: list[dict[str, Any]],
) -> bool:
    """Serialise *items* as a JSON array under *key*.

    Returns False (after logging) instead of raising; callers keep going
    with their in-memory state.
    """
    if store is None:
        return False
    try:
        await store.set(key, json.dumps(items, default=str))
    except Exception:
        logger.exception("storage_save_error", key=key, count=len(items))
        return False
    return True


async def load_items(
    store: KeyValueStore | None,
    key: str,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Load the JSON array stored under *key*, keeping the newest *limit*."""
    if store is None:
        return []
    try:
        raw = await store.get(key)
        if raw is None:
            return []
        data = json.loads(raw)
    except Exception:
        logger.exception("storage_load_error", key=key)
        return []
    if not isinstance(data, list):
        logger.warning("storage_load_unexpected_type", key=key, type=type(data).__name__)
        return []
    items = [item for item in data if isinstance(item, dict)]
    if limit is not None:
        items = items[-limit:]
    return items
