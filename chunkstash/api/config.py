from dataclasses import dataclass

from chunkstash.exceptions import BadConfigException
from chunkstash.utils.definitions import DEFAULT_INITIAL_FAN_OUT, DEFAULT_MAX_CONCURRENCY, DEFAULT_MAX_SPLIT_DEPTH


@dataclass(frozen=True)
class ChunkStoreConfig:
    # number of pieces a value is cut into before any bisection
    initial_fan_out: int = DEFAULT_INITIAL_FAN_OUT
    # bisections allowed below a top level piece
    max_split_depth: int = DEFAULT_MAX_SPLIT_DEPTH
    # store requests in flight at once, 0 for unbounded
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self):
        if self.initial_fan_out < 1:
            raise BadConfigException(f"initial_fan_out must be at least 1, got {self.initial_fan_out}")
        if self.max_split_depth < 0:
            raise BadConfigException(f"max_split_depth must not be negative, got {self.max_split_depth}")
        if self.max_concurrency < 0:
            raise BadConfigException(f"max_concurrency must not be negative, got {self.max_concurrency}")
