"""Typer CLI: run, status, check commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from funrotate import __version__

app = typer.Typer(
    name="funrotate",
    help="Rotate log files by size or interval, keeping numbered backups.",
    no_args_is_help=True,
)
console = Console()

EXIT_FATAL = 1
EXIT_TARGET_FAILED = 2

_STATUS_STYLES = {
    "rotated": "green",
    "skipped": "dim",
    "noop": "yellow",
    "due": "cyan",
    "failed": "red bold",
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"funrotate v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _fatal(message: str) -> None:
    logging.getLogger("funrotate").error(message)
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(EXIT_FATAL)


def _load(config_path: Path | None, state_path: Path | None):
    from funrotate.config import ConfigError, load_config
    from funrotate.state import RotationStateStore, StateStoreError

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        _fatal(f"cannot load configuration: {exc}")
    try:
        store = RotationStateStore.load(state_path or config.state_file)
    except StateStoreError as exc:
        _fatal(f"cannot load info about last rotation: {exc}")
    return config, store


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V", help="Show version.", callback=_version_callback, is_eager=True
    ),
) -> None:
    """funrotate - size and interval based file rotation."""


@app.command()
def run(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default: ./funrotate.yaml)"),
    state_path: Path = typer.Option(None, "--state", help="Rotation state file (overrides config)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report due targets without rotating"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Abort on the first target failure"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Rotate every configured file that is due."""
    from funrotate.log_rotation import FilesystemError, PatternError
    from funrotate.runner import run_rotation
    from funrotate.state import StateStoreError

    setup_logging(verbose)
    config, store = _load(config_path, state_path)

    results = []
    aborted: str | None = None
    try:
        results = run_rotation(config.targets, store, fail_fast=fail_fast, dry_run=dry_run)
    except (FilesystemError, PatternError) as exc:
        aborted = str(exc)
    finally:
        try:
            store.save()
        except StateStoreError as exc:
            _fatal(str(exc))

    if aborted:
        _fatal(f"rotation aborted: {aborted}")

    table = Table(title="Rotation Results", show_lines=False)
    table.add_column("Status", style="bold", width=8)
    table.add_column("Path")
    table.add_column("Detail")
    for r in results:
        style = _STATUS_STYLES.get(r.status, "")
        detail = r.detail
        if r.rotated_at is not None:
            detail = f"at {r.rotated_at:%Y-%m-%d %H:%M:%S}"
        table.add_row(f"[{style}]{r.status}[/{style}]", r.path, detail)
    console.print(table)

    failed = [r for r in results if r.failed]
    if failed:
        console.print(f"[red]{len(failed)} target(s) failed[/red]")
        raise typer.Exit(EXIT_TARGET_FAILED)


@app.command()
def status(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default: ./funrotate.yaml)"),
    state_path: Path = typer.Option(None, "--state", help="Rotation state file (overrides config)"),
) -> None:
    """Show each target's last rotation, size, and whether it is due."""
    from funrotate.log_rotation import FilesystemError, RotationEngine

    setup_logging()
    config, store = _load(config_path, state_path)
    engine = RotationEngine()

    console.print(Panel("[bold]funrotate status[/bold]", style="blue"))
    table = Table(show_lines=False)
    table.add_column("Path")
    table.add_column("Interval", width=8)
    table.add_column("Keep", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Last rotation")
    table.add_column("Due")

    for target in config.targets:
        last = store.last_rotation_time(target.path)
        last_text = f"{last:%Y-%m-%d %H:%M}" if last else "[dim]never[/dim]"
        try:
            size_text = str(os.stat(target.path).st_size)
            due = engine.is_due(target, last)
            due_text = "[yellow]yes[/yellow]" if due else "[green]no[/green]"
        except (OSError, FilesystemError):
            size_text = "[red]missing[/red]"
            due_text = "[red]error[/red]"
        table.add_row(
            target.path,
            target.interval.value,
            str(target.max_generations),
            size_text,
            last_text,
            due_text,
        )
    console.print(table)
    console.print(f"  State: [cyan]{store.path}[/cyan] ({len(store)} records)")


@app.command()
def check(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file (default: ./funrotate.yaml)"),
) -> None:
    """Validate the configuration file."""
    from funrotate.config import ConfigError, load_config

    setup_logging()
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        for message in str(exc).split("; "):
            console.print(f"  [red]Config error: {message}[/red]")
        raise typer.Exit(EXIT_FATAL)

    console.print(f"  Config: [green]valid[/green] ({len(config.targets)} targets)")
    for target in config.targets:
        transform = target.transform if target.apply_transform else "none"
        console.print(
            f"  [cyan]{target.path}[/cyan] {target.interval.value}, "
            f"{target.strategy.value}, keep {target.max_generations}, "
            f"size > {target.size_threshold}, transform {transform}"
        )
    console.print(f"  State: [cyan]{config.state_file}[/cyan]")
