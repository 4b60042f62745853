import asyncio
import threading

import pytest

from chunkstash.api.chunk_store import ChunkStore
from chunkstash.exceptions import KVStoreException
from chunkstash.kv_store.callback_interface import CallbackInterface
from chunkstash.kv_store.kv_store_interface import KVStoreInterface, StoreLimits
from chunkstash.kv_store.memory_interface import MemoryInterface
from chunkstash.kv_store.posix_file_interface import POSIXInterface, filename_to_key, key_to_filename


def test_memory_interface(kv_store_checker):
    assert asyncio.run(kv_store_checker(MemoryInterface()))


def test_posix_interface(kv_store_checker, tmp_path):
    assert asyncio.run(kv_store_checker(POSIXInterface(tmp_path / "store")))


def test_callback_interface(kv_store_checker, fake_cloud_storage):
    assert asyncio.run(kv_store_checker(CallbackInterface(fake_cloud_storage())))


def test_store_limits():
    store = MemoryInterface(limits=StoreLimits(max_value_length=4, max_keys=2, max_key_length=5))

    async def run():
        await store.set_item("a", "1234")
        with pytest.raises(KVStoreException):
            await store.set_item("b", "12345")
        with pytest.raises(KVStoreException):
            await store.set_item("toolong", "1")
        await store.set_item("b", "1")
        with pytest.raises(KVStoreException):
            await store.set_item("c", "1")
        # overwriting an existing key does not count against the key limit
        await store.set_item("b", "2")

    asyncio.run(run())
    assert store.items == {"a": "1234", "b": "2"}


def test_posix_limits(tmp_path):
    store = POSIXInterface(tmp_path, limits=StoreLimits(max_value_length=3))
    with pytest.raises(KVStoreException):
        asyncio.run(store.set_item("k", "abcd"))
    assert asyncio.run(store.list_keys()) == []


def test_posix_filenames():
    for key in ["plain", "a/b", ".", "..", ".hidden", "sp ace", "ünï"]:
        filename = key_to_filename(key)
        assert "/" not in filename
        assert not filename.startswith(".")
        assert filename_to_key(filename) == key


def test_posix_chunk_store_round_trip(tmp_path):
    store = POSIXInterface(tmp_path, limits=StoreLimits(max_value_length=100))
    chunk_store = ChunkStore(store)
    value = "line\r\nwith\nnewlines and ünicode " * 200
    asyncio.run(chunk_store.store("doc", value))
    assert asyncio.run(chunk_store.retrieve("doc")) == value
    assert asyncio.run(chunk_store.list_keys()) == ["doc"]
    assert asyncio.run(chunk_store.clear_all()) > 0
    assert asyncio.run(store.list_keys()) == []


def test_callback_errors(fake_cloud_storage):
    client = fake_cloud_storage(fail_keys=["bad"])
    store = CallbackInterface(client)
    with pytest.raises(KVStoreException):
        asyncio.run(store.set_item("bad", "v"))

    class RaisingClient:
        def getKeys(self, callback):
            raise RuntimeError("not available")

    with pytest.raises(KVStoreException):
        asyncio.run(CallbackInterface(RaisingClient()).list_keys())


def test_callback_from_another_thread(fake_cloud_storage):
    client = fake_cloud_storage()

    class ThreadedClient:
        def __getattr__(self, name):
            method = getattr(client, name)

            def call(*args):
                threading.Thread(target=method, args=args).start()

            return call

    store = CallbackInterface(ThreadedClient())

    async def run():
        await store.set_item("k", "v")
        return await store.get_item("k")

    assert asyncio.run(run()) == "v"


def test_chunk_store_over_callback_interface(fake_cloud_storage):
    client = fake_cloud_storage(max_value_length=4096)
    chunk_store = ChunkStore(CallbackInterface(client))
    value = "s" * 500_000
    total_chunks = asyncio.run(chunk_store.store("userShare", value))
    assert total_chunks > 32
    assert all(len(v) <= 4096 for v in client.items.values())
    assert asyncio.run(chunk_store.retrieve("userShare")) == value


def test_create():
    assert isinstance(KVStoreInterface.create("memory"), MemoryInterface)
    with pytest.raises(ValueError):
        KVStoreInterface.create("local")
    with pytest.raises(ValueError):
        KVStoreInterface.create("s3", "bucket")


def test_create_local(tmp_path):
    store = KVStoreInterface.create("local", str(tmp_path), limits=StoreLimits(max_keys=3))
    assert isinstance(store, POSIXInterface)
    assert store.location() == f"local:{tmp_path}"
    assert store.limits.max_keys == 3
