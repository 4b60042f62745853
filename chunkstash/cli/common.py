import asyncio
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from chunkstash import exceptions
from chunkstash.api.chunk_store import ChunkStore
from chunkstash.config_paths import load_chunkstash_config, load_config_path
from chunkstash.kv_store.kv_store_interface import KVStoreInterface
from chunkstash.progress_reporting.store_hooks import Severity
from chunkstash.utils import logger
from chunkstash.utils.path import parse_store_path

console = Console()
err_console = Console(stderr=True)

_SEVERITY_STYLE = {
    Severity.info: "bright_black",
    Severity.error: "red",
    Severity.success: "green",
}


def console_observer(message: str, severity: Severity):
    err_console.print(f"[{_SEVERITY_STYLE.get(severity, 'white')}]{escape(message)}[/]")


def load_config():
    config = load_chunkstash_config(load_config_path())
    if config.log_file:
        logger.open_log_file(config.log_file)
    return config


def make_chunk_store(store: Optional[str] = None, quiet: bool = False) -> ChunkStore:
    config = load_config()
    store_type, location = parse_store_path(store or config.get_flag("store_path"))
    kv_store = KVStoreInterface.create(store_type, location, limits=config.to_store_limits())
    logger.fs.debug(f"Using store {kv_store.location()}")
    return ChunkStore(kv_store, config=config.to_chunk_store_config(), observer=None if quiet else console_observer)


def run(coro):
    return asyncio.run(coro)


def print_error_and_exit(e: Exception) -> NoReturn:
    """Print a store, config or usage error without a traceback and exit with status 1."""
    if isinstance(e, exceptions.ChunkStashException):
        console.print(e.pretty_print_str())
    else:
        console.print(f"[red]{escape(str(e))}[/red]")
    raise typer.Exit(1)
