import json
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

MANIFEST_SUFFIX = "_meta"
CHUNK_INFIX = "_chunk_"

# <base>_chunk_<index>[_0|_1]*[_meta], base split at the last "_chunk_"
CHUNK_KEY_RE = re.compile(r"^(?P<base>.+)_chunk_(?P<path>\d+(?:_[01])*)(?P<meta>_meta)?$")


def manifest_key(key: str) -> str:
    return f"{key}{MANIFEST_SUFFIX}"


def chunk_key(key: str, index: int) -> str:
    return f"{key}{CHUNK_INFIX}{index}"


def child_key(node_key: str, side: int) -> str:
    if side not in (0, 1):
        raise ValueError(f"Invalid side {side}, expected 0 or 1")
    return f"{node_key}_{side}"


def is_valid_logical_key(key: str) -> bool:
    """Logical keys must not collide with the physical names derived from other logical keys."""
    if not key or key.endswith(MANIFEST_SUFFIX):
        return False
    return CHUNK_KEY_RE.match(key) is None


def logical_key_of(physical_key: str) -> str:
    """Map a physical key back to the logical key whose group it belongs to."""
    match = CHUNK_KEY_RE.match(physical_key)
    if match:
        return match.group("base")
    if physical_key.endswith(MANIFEST_SUFFIX) and len(physical_key) > len(MANIFEST_SUFFIX):
        return physical_key[: -len(MANIFEST_SUFFIX)]
    return physical_key


def is_manifest_key(physical_key: str) -> bool:
    return CHUNK_KEY_RE.match(physical_key) is None and logical_key_of(physical_key) != physical_key


def group_keys(physical_keys: Iterable[str]) -> Dict[str, Set[str]]:
    groups: Dict[str, Set[str]] = {}
    for physical_key in physical_keys:
        groups.setdefault(logical_key_of(physical_key), set()).add(physical_key)
    return groups


def split_value(value: str, n_pieces: int) -> List[str]:
    """Split value into n_pieces contiguous pieces of ceil(len / n_pieces) characters, dropping empty ones."""
    if len(value) == 0:
        return []
    piece_size = math.ceil(len(value) / n_pieces)
    pieces = [value[i * piece_size : (i + 1) * piece_size] for i in range(n_pieces)]
    return [piece for piece in pieces if len(piece) > 0]


@dataclass
class ChunkNode:
    """A node of the split tree: a contiguous fragment of a logical value and the physical key it is stored under."""

    key: str
    fragment: str
    depth: int = 0
    parent: Optional["ChunkNode"] = field(default=None, repr=False, compare=False)

    def bisect(self) -> Tuple["ChunkNode", "ChunkNode"]:
        # left half gets the smaller share when the length is odd
        mid = len(self.fragment) // 2
        left = ChunkNode(child_key(self.key, 0), self.fragment[:mid], self.depth + 1, parent=self)
        right = ChunkNode(child_key(self.key, 1), self.fragment[mid:], self.depth + 1, parent=self)
        return left, right

    def ancestors(self) -> Iterable["ChunkNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def marker_key(self) -> str:
        return manifest_key(self.key)


@dataclass
class ChunkManifest:
    """Metadata persisted under `<key>_meta`: the number of leaf chunks below a root or split node."""

    total_chunks: int

    def to_json(self) -> str:
        return json.dumps({"totalChunks": self.total_chunks})

    @staticmethod
    def from_json(payload: str) -> "ChunkManifest":
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Malformed manifest: {e}") from e
        if not isinstance(data, dict) or "totalChunks" not in data:
            raise ValueError(f"Manifest is missing totalChunks: {payload!r}")
        total_chunks = data["totalChunks"]
        if isinstance(total_chunks, bool) or not isinstance(total_chunks, int) or total_chunks < 0:
            raise ValueError(f"Invalid totalChunks in manifest: {total_chunks!r}")
        return ChunkManifest(total_chunks=total_chunks)


@dataclass
class ChunkLayout:
    """Where the data of one logical value lives: leaf keys in left-to-right order and the keys of bisected nodes."""

    leaves: List[str] = field(default_factory=list)
    split_nodes: List[str] = field(default_factory=list)

    def marker_keys(self) -> List[str]:
        return [manifest_key(node_key) for node_key in self.split_nodes]

    def physical_keys(self) -> List[str]:
        """Keys that hold data for this layout, excluding the root manifest."""
        return self.leaves + self.marker_keys()
