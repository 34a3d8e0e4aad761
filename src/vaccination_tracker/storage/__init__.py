"""
Persistence backends for the tracker.

`build_store()` picks the backend named by `settings.STORAGE_BACKEND`.
"""

from typing import Optional

from vaccination_tracker.config import Settings
from vaccination_tracker.storage.kv_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)


def build_store(config: Settings, backend: Optional[str] = None) -> KeyValueStore:
    """
    Create the key-value store configured in `config`.

    Args:
        config: Application settings.
        backend: Optional override of `config.STORAGE_BACKEND`.

    Returns:
        KeyValueStore: The configured backend.
    """
    backend = (backend or config.STORAGE_BACKEND).lower()
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "redis":
        from vaccination_tracker.storage.redis_store import RedisKeyValueStore

        return RedisKeyValueStore.from_url(config.effective_redis_url)
    return JsonFileKeyValueStore(config.storage_file)


__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "build_store",
]
