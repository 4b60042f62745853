import asyncio
from typing import Any, List, Optional, Union

from chunkstash.exceptions import KVStoreException
from chunkstash.kv_store.kv_store_interface import KVStoreInterface, as_key_list
from chunkstash.utils import logger


class CallbackInterface(KVStoreInterface):
    """
    Adapts a callback style cloud storage client to the async store contract.

    The client exposes `setItem(key, value, callback)`, `getItem(key, callback)`, `getKeys(callback)` and
    `removeItems(keys, callback)`, each calling `callback(error, result)` exactly once, as the Telegram Mini App
    CloudStorage API does. A truthy error fails the request. Callbacks may fire synchronously or from another
    thread.
    """

    def __init__(self, client: Any, name: str = "cloud_storage"):
        self.client = client
        self.name = name

    @property
    def provider(self) -> str:
        return "callback"

    def location(self) -> str:
        return f"callback:{self.name}"

    async def _request(self, method: str, *args) -> Any:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def resolve(error, result):
            if future.done():
                return
            if error:
                future.set_exception(KVStoreException(f"{method} failed: {error}"))
            else:
                future.set_result(result)

        def callback(error, result=None):
            loop.call_soon_threadsafe(resolve, error, result)

        try:
            getattr(self.client, method)(*args, callback)
        except Exception as e:
            logger.fs.warning(f"[CallbackInterface] {method} raised before completing: {e}")
            raise KVStoreException(f"{method} failed: {e}") from e
        return await future

    async def set_item(self, key: str, value: str) -> None:
        await self._request("setItem", key, value)

    async def get_item(self, key: str) -> Optional[str]:
        result = await self._request("getItem", key)
        # the Telegram client reports a missing key as an empty string
        return result if result else None

    async def list_keys(self) -> List[str]:
        return list(await self._request("getKeys") or [])

    async def remove_items(self, keys: Union[str, List[str]]) -> None:
        keys = as_key_list(keys)
        if len(keys) == 0:
            return
        await self._request("removeItems", keys)
