import os

KB = 1024
MB = 1024 * KB
GB = 1024 * MB

# engine defaults, shared by ChunkStoreConfig and the config file flags
DEFAULT_INITIAL_FAN_OUT = 32
DEFAULT_MAX_SPLIT_DEPTH = 256
DEFAULT_MAX_CONCURRENCY = 32


def format_bytes(bytes_int: int):
    if bytes_int < KB:
        return f"{bytes_int}B"
    for unit, size in (("GB", GB), ("MB", MB), ("KB", KB)):
        if bytes_int >= size:
            return f"{bytes_int / size:.2f}{unit}"


is_stderr_log_env = os.environ.get("CHUNKSTASH_LOG_STDERR", None) == "1"
