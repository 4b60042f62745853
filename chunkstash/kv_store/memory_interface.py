import asyncio
from collections import Counter
from typing import Callable, Dict, List, Optional, Union

from chunkstash.exceptions import KVStoreException
from chunkstash.kv_store.kv_store_interface import KVStoreInterface, StoreLimits, as_key_list


class MemoryInterface(KVStoreInterface):
    """In-process store. `fail_set` is an optional predicate (key, value) -> bool used to inject set failures."""

    def __init__(self, limits: Optional[StoreLimits] = None, fail_set: Optional[Callable[[str, str], bool]] = None):
        self.items: Dict[str, str] = {}
        self.limits = limits or StoreLimits()
        self.fail_set = fail_set
        self.fail_get: Optional[Callable[[str], bool]] = None
        self.fail_remove: Optional[Callable[[str], bool]] = None
        self.fail_list = False
        self.calls = Counter()
        self.set_attempts: List[str] = []

    @property
    def provider(self) -> str:
        return "memory"

    def location(self) -> str:
        return "memory://"

    async def set_item(self, key: str, value: str) -> None:
        self.calls["set"] += 1
        self.set_attempts.append(key)
        await asyncio.sleep(0)
        if self.fail_set is not None and self.fail_set(key, value):
            raise KVStoreException(f"Failed to set {key}")
        self.limits.check_set(key, value, len(self.items), key in self.items)
        self.items[key] = value

    async def get_item(self, key: str) -> Optional[str]:
        self.calls["get"] += 1
        await asyncio.sleep(0)
        if self.fail_get is not None and self.fail_get(key):
            raise KVStoreException(f"Failed to get {key}")
        return self.items.get(key)

    async def list_keys(self) -> List[str]:
        self.calls["list"] += 1
        await asyncio.sleep(0)
        if self.fail_list:
            raise KVStoreException("Failed to list keys")
        return list(self.items.keys())

    async def remove_items(self, keys: Union[str, List[str]]) -> None:
        self.calls["remove"] += 1
        keys = as_key_list(keys)
        await asyncio.sleep(0)
        if self.fail_remove is not None and any(self.fail_remove(key) for key in keys):
            raise KVStoreException(f"Failed to remove {len(keys)} keys")
        for key in keys:
            self.items.pop(key, None)
