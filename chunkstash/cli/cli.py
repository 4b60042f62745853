import sys
from pathlib import Path
from typing import Optional

import typer

import chunkstash.cli.cli_config
from chunkstash import exceptions
from chunkstash.cli.common import console, make_chunk_store, print_error_and_exit, run
from chunkstash.utils.definitions import format_bytes

app = typer.Typer(name="chunkstash")
app.add_typer(chunkstash.cli.cli_config.app, name="config")

STORE_HELP = "Store location: a directory, local://<dir> or memory://. Defaults to the store_path config flag."


@app.command()
def put(
    key: str = typer.Argument(..., help="Logical key to store the value under"),
    value: Optional[str] = typer.Argument(None, help="Value to store, read from --file or stdin when omitted"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the value from this file"),
    store: Optional[str] = typer.Option(None, "--store", "-s", help=STORE_HELP),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not print progress"),
):
    """Store a value, splitting it into chunks the store accepts."""
    if value is None:
        value = file.read_text(encoding="utf-8") if file is not None else sys.stdin.read()
    try:
        chunk_store = make_chunk_store(store, quiet=quiet)
        total_chunks = run(chunk_store.store(key, value))
    except (exceptions.ChunkStashException, ValueError) as e:
        print_error_and_exit(e)
    size = format_bytes(len(value.encode("utf-8")))
    console.print(f":white_check_mark: [bold green]Stored {key}[/bold green] [bright_black]({size} in {total_chunks} chunks)[/bright_black]")


@app.command()
def get(
    key: str = typer.Argument(..., help="Logical key to read"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the value to this file instead of stdout"),
    store: Optional[str] = typer.Option(None, "--store", "-s", help=STORE_HELP),
    quiet: bool = typer.Option(True, "--quiet/--verbose", help="Print progress while reading"),
):
    """Retrieve a value and recombine its chunks."""
    try:
        chunk_store = make_chunk_store(store, quiet=quiet)
        value = run(chunk_store.retrieve(key))
    except (exceptions.ChunkStashException, ValueError) as e:
        print_error_and_exit(e)
    if output is not None:
        output.write_text(value, encoding="utf-8")
    else:
        sys.stdout.write(value)
        sys.stdout.flush()


@app.command()
def rm(
    key: str = typer.Argument(..., help="Logical key to remove"),
    store: Optional[str] = typer.Option(None, "--store", "-s", help=STORE_HELP),
):
    """Remove one value and all of its chunks."""
    try:
        chunk_store = make_chunk_store(store)
        removed = run(chunk_store.remove(key))
    except (exceptions.ChunkStashException, ValueError) as e:
        print_error_and_exit(e)
    if removed == 0:
        typer.secho(f"No keys found for {key}", fg="yellow")


@app.command()
def ls(store: Optional[str] = typer.Option(None, "--store", "-s", help=STORE_HELP)):
    """List stored values."""
    try:
        chunk_store = make_chunk_store(store, quiet=True)
        keys = run(chunk_store.list_keys())
    except (exceptions.ChunkStashException, ValueError) as e:
        print_error_and_exit(e)
    for key in keys:
        typer.echo(key)


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    store: Optional[str] = typer.Option(None, "--store", "-s", help=STORE_HELP),
):
    """Remove every key in the store."""
    if not yes:
        typer.confirm("Remove every key in the store?", abort=True)
    try:
        chunk_store = make_chunk_store(store)
        removed = run(chunk_store.clear_all())
    except (exceptions.ChunkStashException, ValueError) as e:
        print_error_and_exit(e)
    typer.secho(f"Removed {removed} keys", fg="green")


typer_click_object = typer.main.get_command(app)

if __name__ == "__main__":
    app()
