from unittest.mock import AsyncMock

import pytest

from vaccination_tracker.storage.redis_store import RedisKeyValueStore


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = "[]"
    return client


@pytest.mark.asyncio
async def test_keys_are_prefixed(redis_client):
    store = RedisKeyValueStore(redis_client, prefix="vt:")

    assert await store.get_item("@VaccineTracker:children") == "[]"
    await store.set_item("downloaded_countries", '["Russia"]')
    await store.remove_item("vaccine_cache_Russia")
    await store.multi_remove(["a", "b"])

    redis_client.get.assert_awaited_once_with("vt:@VaccineTracker:children")
    redis_client.set.assert_awaited_once_with("vt:downloaded_countries", '["Russia"]')
    assert redis_client.delete.await_args_list[0].args == ("vt:vaccine_cache_Russia",)
    assert redis_client.delete.await_args_list[1].args == ("vt:a", "vt:b")


@pytest.mark.asyncio
async def test_bytes_are_decoded_and_empty_removal_is_noop(redis_client):
    redis_client.get.return_value = b'{"language": "en"}'
    store = RedisKeyValueStore(redis_client)

    assert await store.get_item("@VaccineTracker:settings") == '{"language": "en"}'
    await store.multi_remove([])
    redis_client.delete.assert_not_awaited()
