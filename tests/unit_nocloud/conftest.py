import asyncio

import pytest

from chunkstash import config_paths
from chunkstash.kv_store.kv_store_interface import KVStoreInterface
from chunkstash.kv_store.memory_interface import MemoryInterface


async def kv_store_test_framework(interface: KVStoreInterface):
    key = "test_key.with/odd chars"

    await interface.set_item(key, "hello")
    assert await interface.get_item(key) == "hello"
    assert await interface.get_item("random_nonexistent_key") is None, "Key should not exist"
    assert key in await interface.list_keys()

    # overwrite
    await interface.set_item(key, "world")
    assert await interface.get_item(key) == "world"

    # batch and single removal, absent keys are a no-op
    await interface.set_item("other", "x")
    await interface.remove_items([key, "random_nonexistent_key"])
    assert await interface.get_item(key) is None
    await interface.remove_items("other")
    assert await interface.list_keys() == []
    return True


@pytest.fixture
def kv_store_checker():
    return kv_store_test_framework


@pytest.fixture
def threshold_store():
    """A store that rejects values longer than 64 characters."""

    def make(threshold=64):
        return MemoryInterface(fail_set=lambda key, value: len(value) > threshold)

    return make


class SlowMemoryInterface(MemoryInterface):
    """Tracks how many set requests are in flight at once."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.in_flight = 0
        self.max_in_flight = 0

    async def set_item(self, key, value):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.001)
            await super().set_item(key, value)
        finally:
            self.in_flight -= 1


@pytest.fixture
def slow_store():
    return SlowMemoryInterface()


class FakeCloudStorage:
    """Callback style client mimicking the Telegram CloudStorage API, with a value size limit."""

    def __init__(self, max_value_length=4096, fail_keys=()):
        self.items = {}
        self.max_value_length = max_value_length
        self.fail_keys = set(fail_keys)

    def setItem(self, key, value, callback):
        if len(value) > self.max_value_length or key in self.fail_keys:
            callback("VALUE_TOO_LONG", None)
            return
        self.items[key] = value
        callback(None, True)

    def getItem(self, key, callback):
        callback(None, self.items.get(key, ""))

    def getKeys(self, callback):
        callback(None, list(self.items.keys()))

    def removeItems(self, keys, callback):
        for key in keys:
            self.items.pop(key, None)
        callback(None, True)


@pytest.fixture
def fake_cloud_storage():
    return FakeCloudStorage


@pytest.fixture
def chunkstash_config_file(tmp_path, monkeypatch):
    path = tmp_path / "config"
    monkeypatch.setenv("CHUNKSTASH_CONFIG", str(path))
    config_paths.load_config_path.cache_clear()
    config_paths.load_chunkstash_config.cache_clear()
    yield path
    config_paths.load_config_path.cache_clear()
    config_paths.load_chunkstash_config.cache_clear()
