"""
Redis-backed key-value store.

Keys are namespaced with a prefix so several tracker instances can share one database.
Values are stored as plain strings; no Redis-side expiry is used because calendar cache
freshness is decided by `CalendarCache` against the injected clock.
"""

from typing import Iterable, Optional

import redis.asyncio as redis

from vaccination_tracker.managers.logging_manager import get_logger

logger = get_logger(prefix="[RedisStore]")


class RedisKeyValueStore:
    """
    Key-value store over `redis.asyncio`.

    Args:
        client: A connected `redis.asyncio.Redis` client (use `decode_responses=True`).
        prefix: Namespace prepended to every key.
    """

    def __init__(self, client: "redis.Redis", prefix: str = "vaccination_tracker:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "vaccination_tracker:") -> "RedisKeyValueStore":
        client = redis.Redis.from_url(url, decode_responses=True)
        logger.info(f"Using Redis storage at {url.split('@')[-1]}")
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get_item(self, key: str) -> Optional[str]:
        value = await self.client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set_item(self, key: str, value: str) -> None:
        await self.client.set(self._key(key), value)

    async def remove_item(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def multi_remove(self, keys: Iterable[str]) -> None:
        prefixed = [self._key(key) for key in keys]
        if prefixed:
            await self.client.delete(*prefixed)

    async def close(self) -> None:
        await self.client.aclose()
