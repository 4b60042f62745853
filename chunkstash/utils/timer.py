import time
from typing import Optional

from chunkstash.utils import logger


class Timer:
    """Measures a block and logs its duration to the log file when given a description."""

    def __init__(self, print_desc: Optional[str] = None):
        self.print_desc = print_desc
        self.start = time.perf_counter()
        self.end: Optional[float] = None

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_typ, exc_val, exc_tb):
        self.end = time.perf_counter()
        if self.print_desc:
            status = "failed after" if exc_typ is not None else "took"
            logger.fs.debug(f"[Timer] {self.print_desc} {status} {self.elapsed * 1000:.1f}ms")

    @property
    def elapsed(self) -> float:
        return (self.end if self.end is not None else time.perf_counter()) - self.start
