"""Persistence contract and stores for monitoring history."""

from vigil.storage.store import (
    ACTIVE_INCIDENTS_KEY,
    ALERT_HISTORY_KEY,
    HEALTH_HISTORY_KEY,
    PERFORMANCE_HISTORY_KEY,
    JsonDirectoryStore,
    KeyValueStore,
    MemoryStore,
    create_store,
    load_items,
    save_items,
)

__all__ = [
    "ACTIVE_INCIDENTS_KEY",
    "ALERT_HISTORY_KEY",
    "HEALTH_HISTORY_KEY",
    "PERFORMANCE_HISTORY_KEY",
    "JsonDirectoryStore",
    "KeyValueStore",
    "MemoryStore",
    "create_store",
    "load_items",
    "save_items",
]
