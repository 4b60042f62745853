from pathlib import Path

from chunkstash import exceptions
from chunkstash.api.chunk_store import ChunkStore
from chunkstash.api.config import ChunkStoreConfig
from chunkstash.kv_store.callback_interface import CallbackInterface
from chunkstash.kv_store.kv_store_interface import KVStoreInterface, StoreLimits
from chunkstash.kv_store.memory_interface import MemoryInterface
from chunkstash.kv_store.posix_file_interface import POSIXInterface
from chunkstash.progress_reporting.store_hooks import Severity

__version__ = "0.1.0"
__root__ = Path(__file__).parent.parent
__all__ = [
    "__version__",
    "__root__",
    # modules
    "exceptions",
    # API
    "ChunkStore",
    "ChunkStoreConfig",
    "Severity",
    # stores
    "KVStoreInterface",
    "StoreLimits",
    "MemoryInterface",
    "POSIXInterface",
    "CallbackInterface",
]
