import configparser
import os
from dataclasses import dataclass
from pathlib import Path

from typing import Any, Optional

from chunkstash.exceptions import BadConfigException
from chunkstash.utils.definitions import DEFAULT_INITIAL_FAN_OUT, DEFAULT_MAX_CONCURRENCY, DEFAULT_MAX_SPLIT_DEPTH

_FLAG_TYPES = {
    "initial_fan_out": int,
    "max_split_depth": int,
    "max_concurrency": int,
    "store_path": str,
    "max_value_length": int,
    "max_keys": int,
    "max_key_length": int,
}

_DEFAULT_FLAGS = {
    "initial_fan_out": DEFAULT_INITIAL_FAN_OUT,
    "max_split_depth": DEFAULT_MAX_SPLIT_DEPTH,
    "max_concurrency": DEFAULT_MAX_CONCURRENCY,
    "store_path": "~/.chunkstash/store",
    # 0 disables the limit
    "max_value_length": 0,
    "max_keys": 0,
    "max_key_length": 0,
}


def _map_type(value, val_type):
    if isinstance(value, str):
        value = value.strip()
    return val_type(value)


@dataclass
class ChunkStashConfig:
    log_file: Optional[str] = None

    @classmethod
    def default_config(cls) -> "ChunkStashConfig":
        return cls()

    @classmethod
    def load_config(cls, path) -> "ChunkStashConfig":
        """Load from a config file."""
        path = Path(path)
        config = configparser.ConfigParser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        config.read(path)

        log_file = None
        if "logging" in config and "log_file" in config["logging"]:
            log_file = config.get("logging", "log_file")

        chunkstash_config = cls(log_file=log_file)

        if "flags" in config:
            for flag_name in _FLAG_TYPES:
                if flag_name in config["flags"]:
                    try:
                        chunkstash_config.set_flag(flag_name, config["flags"][flag_name])
                    except ValueError as e:
                        raise BadConfigException(f"Invalid value for {flag_name} in {path}: {e}") from e

        return chunkstash_config

    def to_config_file(self, path):
        path = Path(path)
        config = configparser.ConfigParser()
        if path.exists():
            config.read(os.path.expanduser(path))

        if "logging" not in config:
            config.add_section("logging")
        if self.log_file:
            config.set("logging", "log_file", self.log_file)
        elif "log_file" in config["logging"]:
            config.remove_option("logging", "log_file")

        if "flags" not in config:
            config.add_section("flags")

        for flag_name in _FLAG_TYPES:
            val = getattr(self, f"flag_{flag_name}", None)
            if val is not None:
                config.set("flags", flag_name, str(val))
            else:
                if "flags" in config and flag_name in config["flags"]:
                    config.remove_option("flags", flag_name)

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            config.write(f)

    def valid_flags(self):
        return list(_FLAG_TYPES.keys())

    def get_flag(self, flag_name):
        if flag_name not in self.valid_flags():
            raise KeyError(f"Invalid flag: {flag_name}")
        return getattr(self, f"flag_{flag_name}", _DEFAULT_FLAGS[flag_name])

    def set_flag(self, flag_name, value: Optional[Any]):
        if flag_name not in self.valid_flags():
            raise KeyError(f"Invalid flag: {flag_name}")
        if value is not None:
            setattr(self, f"flag_{flag_name}", _map_type(value, _FLAG_TYPES.get(flag_name, str)))
        else:
            setattr(self, f"flag_{flag_name}", None)

    def to_chunk_store_config(self):
        from chunkstash.api.config import ChunkStoreConfig

        return ChunkStoreConfig(
            initial_fan_out=self.get_flag("initial_fan_out"),
            max_split_depth=self.get_flag("max_split_depth"),
            max_concurrency=self.get_flag("max_concurrency"),
        )

    def to_store_limits(self):
        from chunkstash.kv_store.kv_store_interface import StoreLimits

        return StoreLimits(
            max_value_length=self.get_flag("max_value_length") or None,
            max_keys=self.get_flag("max_keys") or None,
            max_key_length=self.get_flag("max_key_length") or None,
        )
