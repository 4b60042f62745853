import pytest

from chunkstash.utils import logger
from chunkstash.utils.definitions import format_bytes
from chunkstash.utils.path import parse_store_path


def test_parse_store_path():
    # test memory
    assert parse_store_path("memory://") == ("memory", None)

    # test local
    assert parse_store_path("/tmp") == ("local", "/tmp")
    assert parse_store_path("does-not-exist-0000000/store") == ("local", "does-not-exist-0000000/store")
    assert parse_store_path("local:///tmp/store") == ("local", "/tmp/store")
    assert parse_store_path("file:///tmp/store") == ("local", "/tmp/store")

    # test unsupported
    with pytest.raises(ValueError):
        parse_store_path("local://")
    with pytest.raises(ValueError):
        parse_store_path("s3://bucket/key")


def test_format_bytes():
    assert format_bytes(12) == "12B"
    assert format_bytes(2048) == "2.00KB"
    assert format_bytes(3 * 1024 * 1024) == "3.00MB"
    assert format_bytes(5 * 1024 * 1024 * 1024) == "5.00GB"


def test_fs_logger_writes_to_log_file(tmp_path, monkeypatch):
    monkeypatch.setattr(logger, "log_file", None)
    logger.open_log_file(tmp_path / "chunkstash.log")
    logger.fs.info('Stored "k" [bold]in 3 chunks[/bold]')
    logger.fs.warning("removal failed")
    logger.log_file.close()

    lines = (tmp_path / "chunkstash.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith('[INFO]  Stored "k" [bold]in 3 chunks[/bold]')
    assert lines[1].endswith("[WARN]  removal failed")
