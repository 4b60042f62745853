from pathlib import Path
from typing import Optional, Tuple

from chunkstash.utils import logger


def parse_store_path(path: str) -> Tuple[str, Optional[str]]:
    """Returns (store_type, location) for `memory://`, `local://<dir>`, `file://<dir>` or a plain directory."""

    def is_plausible_local_path(path_test: str):
        path_test = Path(path_test).expanduser()
        if path_test.exists():
            return True
        if path_test.parent.exists():
            return True
        return False

    if path.startswith("memory://"):
        return "memory", None
    elif path.startswith("local://") or path.startswith("file://"):
        location = path.split("://", 1)[1]
        if len(location) == 0:
            raise ValueError(f"Invalid local store path: '{path}'")
        return "local", location
    elif "://" in path:
        raise ValueError(f"Unsupported store path: '{path}'")
    else:
        if not is_plausible_local_path(path):
            logger.warning(f"Local store path '{path}' does not exist, it will be created")
        return "local", path
