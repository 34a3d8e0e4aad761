"""
# Key-Value Storage

Whole-value string storage used for every persisted collection (children, records,
reminders, settings, cached calendars). Each key holds one JSON document that is read and
overwritten as a unit; there are no partial updates.

## Backends

- **`InMemoryKeyValueStore`**: Process-local dict, for tests and throwaway sessions.
- **`JsonFileKeyValueStore`**: All keys in a single JSON file, replaced atomically on write.
- **`RedisKeyValueStore`** (`storage.redis_store`): Keys in Redis under a prefix.

A corrupt or unreadable backing file reads as an empty store; callers treat missing keys as
empty collections.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Union

from vaccination_tracker.managers.logging_manager import get_logger

logger = get_logger(prefix="[KeyValueStore]")


class KeyValueStore(Protocol):
    """Async string key-value store."""

    async def get_item(self, key: str) -> Optional[str]:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...

    async def remove_item(self, key: str) -> None:
        ...

    async def multi_remove(self, keys: Iterable[str]) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileKeyValueStore:
    """
    Store every key in one JSON object on disk.

    Writes go to a temporary file that replaces the original, so a crash mid-write leaves
    either the old or the new document. An unreadable or malformed file is treated as empty
    and overwritten on the next write.

    Args:
        path: Location of the JSON file. Parent directories are created on first write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    async def get_item(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)

    async def remove_item(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_remove(self, keys: Iterable[str]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read_all)
            removed = False
            for key in keys:
                if key in data:
                    del data[key]
                    removed = True
            if removed:
                await asyncio.to_thread(self._write_all, data)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Storage file {self.path} is unreadable, treating as empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} does not hold an object, treating as empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        os.replace(tmp_path, self.path)
