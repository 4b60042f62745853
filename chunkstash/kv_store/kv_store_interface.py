from dataclasses import dataclass
from typing import List, Optional, Union

from chunkstash.exceptions import KVStoreException
from chunkstash.utils import logger


@dataclass(frozen=True)
class StoreLimits:
    """Optional quotas enforced by the local stores to emulate a constrained backend."""

    max_value_length: Optional[int] = None
    max_keys: Optional[int] = None
    max_key_length: Optional[int] = None

    def check_set(self, key: str, value: str, n_keys: int, key_exists: bool):
        # a single undifferentiated failure, callers never learn which limit was hit
        if self.max_key_length is not None and len(key) > self.max_key_length:
            raise KVStoreException(f"Failed to set {key}")
        if self.max_value_length is not None and len(value) > self.max_value_length:
            raise KVStoreException(f"Failed to set {key}")
        if self.max_keys is not None and not key_exists and n_keys >= self.max_keys:
            raise KVStoreException(f"Failed to set {key}")


def as_key_list(keys: Union[str, List[str]]) -> List[str]:
    return [keys] if isinstance(keys, str) else list(keys)


class KVStoreInterface:
    """String keyed store with a hard value size and key count ceiling. Every operation may fail with KVStoreException."""

    @property
    def provider(self) -> str:
        raise NotImplementedError()

    def location(self) -> str:
        raise NotImplementedError()

    async def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError()

    async def get_item(self, key: str) -> Optional[str]:
        """Returns None when the key is absent."""
        raise NotImplementedError()

    async def list_keys(self) -> List[str]:
        raise NotImplementedError()

    async def remove_items(self, keys: Union[str, List[str]]) -> None:
        """Removes one key or a list of keys. Removing an absent key is a no-op."""
        raise NotImplementedError()

    @staticmethod
    def create(store_type: str, location: Optional[str] = None, limits: Optional[StoreLimits] = None):
        if store_type.startswith("memory"):
            from chunkstash.kv_store.memory_interface import MemoryInterface

            return MemoryInterface(limits=limits)
        elif store_type.startswith("local"):
            from chunkstash.kv_store.posix_file_interface import POSIXInterface

            if not location:
                raise ValueError("A directory is required for a local store")
            logger.fs.debug(f"attempting to open local store at {location}")
            return POSIXInterface(location, limits=limits)
        else:
            raise ValueError(f"Invalid store type {store_type} - could not create interface")
