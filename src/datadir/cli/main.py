"""
CLI for the data directory cache.

Commands:
    datadir fetch NAME URL - Fetch one object into the data directory
    datadir update - Refresh the HURDAT2 dataset
    datadir ls - List published objects
    datadir show NAME - Show where an object points
    datadir config - Show current configuration
    datadir version - Print version
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from datadir import __version__
from datadir.config import Settings, load_settings
from datadir.directory import DataDir, DataObject
from datadir.exceptions import ConfigurationError, DataDirError
from datadir.logging import setup_logging
from datadir.types import FetchOutcome, FetchStrategy

HURDAT2_OBJECT = "hurdat2.txt"

app = typer.Typer(
    name="datadir",
    help="Content-addressed cache for remote datasets",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

T = TypeVar("T")

DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Directory where data will be stored"),
]


def _load_settings() -> Settings:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        error_console.print("Run 'datadir config' to see what's wrong.")
        raise typer.Exit(1)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return settings


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning cache errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except (DataDirError, ValueError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


async def _fetch(
    base: Path, name: str, url: str, strategy: FetchStrategy, settings: Settings
) -> DataObject:
    async with await DataDir.create(base, settings=settings) as data_dir:
        return await data_dir.get_object(name).fetch(url, strategy)


def _format_size(path: Path) -> str:
    try:
        return f"{path.stat().st_size:,} bytes"
    except OSError:
        return "[red]missing[/red]"


def _print_fetch_result(obj: DataObject) -> None:
    styles = {
        FetchOutcome.UPDATED: "green",
        FetchOutcome.NOT_MODIFIED: "cyan",
        FetchOutcome.SKIPPED: "dim",
    }
    outcome = obj.last_outcome
    style = styles.get(outcome, "white") if outcome else "white"
    label = outcome.value if outcome else "unknown"

    console.print(f"[bold]{obj.name}[/bold]: [{style}]{label}[/{style}]")
    target = obj.target()
    if target:
        console.print(f"[dim]Hash:[/dim] {target}")
    console.print(f"[dim]Path:[/dim] {obj.path()}")


@app.command()
def fetch(
    name: Annotated[str, typer.Argument(help="Object name (e.g., hurdat2.txt)")],
    url: Annotated[str, typer.Argument(help="URL to fetch the object from")],
    strategy: Annotated[
        Optional[FetchStrategy],
        typer.Option("--strategy", "-s", help="When to go to the network"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Fetch a remote resource into the data directory."""
    settings = _load_settings()
    effective_strategy = strategy if strategy is not None else settings.DEFAULT_STRATEGY
    base = data_dir if data_dir is not None else settings.DATA_DIR

    obj = _run(_fetch(base, name, url, effective_strategy, settings))
    _print_fetch_result(obj)


@app.command()
def update(
    hurdat2_url: Annotated[
        Optional[str],
        typer.Option("--hurdat2-url", help="NOAA URL to download hurdat2 data"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Download the latest HURDAT2 dataset unconditionally."""
    settings = _load_settings()
    url = hurdat2_url if hurdat2_url is not None else settings.HURDAT2_URL
    base = data_dir if data_dir is not None else settings.DATA_DIR

    obj = _run(_fetch(base, HURDAT2_OBJECT, url, FetchStrategy.ALWAYS, settings))
    _print_fetch_result(obj)
    console.print(f"[dim]Size:[/dim] {_format_size(obj.path())}")


@app.command("ls")
def list_objects(data_dir: DataDirOption = None) -> None:
    """List published objects."""
    settings = _load_settings()
    base = data_dir if data_dir is not None else settings.DATA_DIR

    async def _collect() -> list[DataObject]:
        async with await DataDir.create(base, settings=settings) as d:
            return [d.get_object(name) for name in d.objects()]

    objects = _run(_collect())
    if not objects:
        console.print(f"[yellow]No objects in {base}[/yellow]")
        return

    table = Table(title=str(base), show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Hash", style="green")
    table.add_column("Size", justify="right")
    table.add_column("ETag")
    table.add_column("Last-Modified")

    for obj in objects:
        target = obj.target() or ""
        try:
            md = obj.metadata()
        except DataDirError:
            etag = last_modified = "[red]unreadable[/red]"
        else:
            etag = (md.etag if md else None) or "[dim]-[/dim]"
            last_modified = (md.last_modified if md else None) or "[dim]-[/dim]"
        table.add_row(
            obj.name, target[:12], _format_size(obj.path()), etag, last_modified
        )

    console.print(table)


@app.command()
def show(
    name: Annotated[str, typer.Argument(help="Object name")],
    data_dir: DataDirOption = None,
) -> None:
    """Show where an object points and its validators."""
    settings = _load_settings()
    base = data_dir if data_dir is not None else settings.DATA_DIR

    async def _lookup() -> DataObject:
        async with await DataDir.create(base, settings=settings) as d:
            return d.get_object(name)

    obj = _run(_lookup())
    target = obj.target()
    if target is None:
        error_console.print(f"[red]Error:[/red] {name} has not been fetched")
        raise typer.Exit(1)

    try:
        md = obj.metadata()
    except DataDirError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {e}")
        md = None

    console.print(
        Panel(
            f"[bold]Path:[/bold] {obj.path()}\n"
            f"[bold]Hash:[/bold] {target}\n"
            f"[bold]Size:[/bold] {_format_size(obj.path())}\n"
            f"[bold]Last-Modified:[/bold] {(md.last_modified if md else None) or '-'}\n"
            f"[bold]ETag:[/bold] {(md.etag if md else None) or '-'}",
            title=f"[bold cyan]{name}[/bold cyan]",
            border_style="cyan",
        )
    )


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        error_console.print("[red]Configuration is invalid.[/red]")
        for field, message in e.context.items():
            error_console.print(f"  {field}: {message}")
        error_console.print()
        error_console.print("Check these environment variables:")
        error_console.print("  - HURDAT2_URL (must be an http:// or https:// URL)")
        error_console.print("  - HTTP_TIMEOUT (must be positive)")
        error_console.print("  - DEFAULT_STRATEGY (always, if-missing, if-outdated)")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"datadir version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
