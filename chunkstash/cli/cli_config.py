"""
Config interface:
* chunkstash config list
* chunkstash config get <key>
* chunkstash config set <key> <value>

Available keys:
* initial_fan_out (int): Number of pieces a value is cut into before any bisection
* max_split_depth (int): Bisections allowed below a piece before a store fails
* max_concurrency (int): Store requests in flight at once, 0 for unbounded
* store_path (str): Directory used when --store is not given
* max_value_length, max_keys, max_key_length (int): Limits emulated by the local store, 0 to disable
"""

import copy

import typer

from chunkstash.cli.common import console, load_config
from chunkstash.config_paths import load_config_path
from chunkstash.exceptions import BadConfigException

app = typer.Typer(name="chunkstash-config")


@app.command()
def list():
    """List all available config keys"""
    config = load_config()
    for key in config.valid_flags():
        value = config.get_flag(key)
        console.print(f"[bold][blue]{key}[/blue] = [italic][green]{value}[/green][/italic][/bold]")


@app.command()
def get(key: str):
    """Get a config value."""
    config = load_config()
    try:
        value = config.get_flag(key)
        console.print(f"[bold][blue]{key}[/blue] = [italic][green]{value}[/green][/italic]")
    except KeyError:
        console.print(f"[red][bold]{key}[/bold] is not a valid config key[/red]")
        raise typer.Exit(code=1)


@app.command()
def set(key: str, value: str):
    """Set a config value."""
    config = load_config()
    try:
        old = config.get_flag(key)
    except KeyError:
        old = None
    # the engine settings are checked on a copy so a rejected value is never kept or saved
    candidate = copy.copy(config)
    try:
        candidate.set_flag(key, value)
        candidate.to_chunk_store_config()
    except KeyError:
        console.print(f"[red][bold]{key}[/bold] is not a valid config key[/red]")
        raise typer.Exit(code=1)
    except (ValueError, BadConfigException):
        console.print(f"[red][bold]{value}[/bold] is not a valid value for {key}[/red]")
        raise typer.Exit(code=1)
    config.set_flag(key, value)
    new = config.get_flag(key)
    config.to_config_file(load_config_path())
    console.print(f"[bold][blue]{key}[/blue] = [italic][green]{new}[/green][/italic][/bold] [bright_black](was {old})[/bright_black]")
