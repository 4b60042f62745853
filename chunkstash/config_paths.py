import functools
import os
from pathlib import Path


__config_root__ = Path("~/.chunkstash").expanduser()


@functools.lru_cache(maxsize=None)
def load_config_path():
    if "CHUNKSTASH_CONFIG" in os.environ:
        return Path(os.environ["CHUNKSTASH_CONFIG"]).expanduser()
    else:
        return __config_root__ / "config"


@functools.lru_cache(maxsize=None)
def load_chunkstash_config(path):
    from chunkstash.config import ChunkStashConfig

    if path.exists():
        return ChunkStashConfig.load_config(path)
    else:
        return ChunkStashConfig.default_config()
