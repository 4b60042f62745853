import pytest

from chunkstash.chunk import (
    ChunkLayout,
    ChunkManifest,
    ChunkNode,
    child_key,
    chunk_key,
    group_keys,
    is_manifest_key,
    is_valid_logical_key,
    logical_key_of,
    manifest_key,
    split_value,
)


def test_split_value():
    assert split_value("", 32) == []
    assert split_value("abc", 32) == ["a", "b", "c"]
    assert split_value("abcdefgh", 4) == ["ab", "cd", "ef", "gh"]
    assert split_value("abcdefghi", 4) == ["abc", "def", "ghi"]
    pieces = split_value("x" * 1000, 32)
    assert len(pieces) == 32
    assert "".join(pieces) == "x" * 1000
    assert max(len(piece) for piece in pieces) == 32


def test_bisect():
    node = ChunkNode(chunk_key("k", 3), "abcde")
    left, right = node.bisect()
    assert (left.key, left.fragment, left.depth) == ("k_chunk_3_0", "ab", 1)
    assert (right.key, right.fragment, right.depth) == ("k_chunk_3_1", "cde", 1)
    grandchild, _ = right.bisect()
    assert grandchild.key == "k_chunk_3_1_0"
    assert [ancestor.key for ancestor in grandchild.ancestors()] == ["k_chunk_3_1", "k_chunk_3"]
    assert right.marker_key() == "k_chunk_3_1_meta"


def test_manifest_json():
    assert ChunkManifest(12).to_json() == '{"totalChunks": 12}'
    assert ChunkManifest.from_json('{"totalChunks": 12}') == ChunkManifest(12)
    assert ChunkManifest.from_json('{"totalChunks": 0, "extra": true}') == ChunkManifest(0)
    for payload in ["", "nope", "{}", "null", '{"totalChunks": 1.5}', '{"totalChunks": true}', '{"totalChunks": -3}']:
        with pytest.raises(ValueError):
            ChunkManifest.from_json(payload)


def test_logical_key_of():
    assert logical_key_of("userShare") == "userShare"
    assert logical_key_of("userShare_meta") == "userShare"
    assert logical_key_of("userShare_chunk_0") == "userShare"
    assert logical_key_of("userShare_chunk_12_0_1") == "userShare"
    assert logical_key_of("userShare_chunk_12_0_1_meta") == "userShare"
    assert logical_key_of("my_chunk_store_chunk_3") == "my_chunk_store"
    assert logical_key_of("user_chunk_x") == "user_chunk_x"
    assert logical_key_of("_meta") == "_meta"


def test_manifest_keys():
    assert manifest_key("walletId") == "walletId_meta"
    assert is_manifest_key("walletId_meta")
    assert not is_manifest_key("walletId_chunk_3_meta")
    assert not is_manifest_key("walletId")


def test_valid_logical_keys():
    assert is_valid_logical_key("userShare")
    assert is_valid_logical_key("my_chunk_store")
    assert not is_valid_logical_key("")
    assert not is_valid_logical_key("userShare_meta")
    assert not is_valid_logical_key("userShare_chunk_1")


def test_group_keys():
    keys = ["userShare_meta", "userShare_chunk_0", "userShare_chunk_1_1", "walletId", "walletId_meta", "walletId_chunk_0"]
    assert group_keys(keys) == {
        "userShare": {"userShare_meta", "userShare_chunk_0", "userShare_chunk_1_1"},
        "walletId": {"walletId", "walletId_meta", "walletId_chunk_0"},
    }


def test_layout_keys():
    layout = ChunkLayout(leaves=["k_chunk_0", "k_chunk_1_0", "k_chunk_1_1"], split_nodes=["k_chunk_1"])
    assert layout.marker_keys() == ["k_chunk_1_meta"]
    assert layout.physical_keys() == ["k_chunk_0", "k_chunk_1_0", "k_chunk_1_1", "k_chunk_1_meta"]


def test_child_key():
    assert child_key("k_chunk_3", 0) == "k_chunk_3_0"
    assert child_key("k_chunk_3_0", 1) == "k_chunk_3_0_1"
    with pytest.raises(ValueError):
        child_key("k_chunk_3", 2)
