import asyncio
import os
import tempfile
from functools import partial
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import quote, unquote

from chunkstash.exceptions import KVStoreException
from chunkstash.kv_store.kv_store_interface import KVStoreInterface, StoreLimits, as_key_list


def key_to_filename(key: str) -> str:
    # "." is encoded too so no key maps to "." or ".." or a hidden temp file
    return quote(key, safe="").replace(".", "%2E")


def filename_to_key(filename: str) -> str:
    return unquote(filename)


class POSIXInterface(KVStoreInterface):
    """Directory backed store, one file per key."""

    def __init__(self, path, limits: Optional[StoreLimits] = None):
        self.dir_path = Path(path).expanduser()
        self.limits = limits or StoreLimits()

    @property
    def provider(self) -> str:
        return "posix"

    def location(self) -> str:
        return f"local:{self.dir_path}"

    def _path(self, key: str) -> Path:
        return self.dir_path / key_to_filename(key)

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args))
        except OSError as e:
            raise KVStoreException(str(e)) from e

    def _list_keys(self) -> List[str]:
        if not self.dir_path.exists():
            return []
        return [filename_to_key(name) for name in os.listdir(self.dir_path) if not name.startswith(".")]

    def _set_item(self, key: str, value: str):
        self.dir_path.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        self.limits.check_set(key, value, len(self._list_keys()), path.exists())
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=self.dir_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8", newline="") as f:
            return f.read()

    def _remove_items(self, keys: List[str]):
        for key in keys:
            try:
                os.remove(self._path(key))
            except FileNotFoundError:
                continue

    async def set_item(self, key: str, value: str) -> None:
        await self._run(self._set_item, key, value)

    async def get_item(self, key: str) -> Optional[str]:
        return await self._run(self._get_item, key)

    async def list_keys(self) -> List[str]:
        return await self._run(self._list_keys)

    async def remove_items(self, keys: Union[str, List[str]]) -> None:
        await self._run(self._remove_items, as_key_list(keys))
