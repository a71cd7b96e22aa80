"""Command-line interface for Build Tree."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from buildtree import __version__
from buildtree.cli_commands.clean_state import clean_state
from buildtree.cli_commands.list_tasks import list_tasks
from buildtree.config import ConfigError, load_config
from buildtree.console_logger import ConsoleLogger
from buildtree.file_sets import FileSetError
from buildtree.logging import parse_log_level
from buildtree.standard_tasks import create_build

SUCCESS_BANNER = "[bold reverse bright_green]   BUILD OK   [/]"

app = typer.Typer(
    help="Build Tree - an incremental build orchestrator",
    add_completion=False,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"buildtree version {__version__}")
        raise typer.Exit()


@app.command()
def main(
    tasks: Optional[List[str]] = typer.Argument(
        None, help="Tasks to run, in order (default: 'default')"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Project config file (default: search for buildtree.yaml)"
    ),
    log_level: str = typer.Option(
        "info", "--log-level", "-L", help="One of fatal, error, warn, info, debug, trace"
    ),
    list_only: bool = typer.Option(False, "--list", "-l", help="List available tasks"),
    clean: bool = typer.Option(
        False, "--clean-state", "--reset", help="Remove incremental state and exit"
    ),
    version: bool = typer.Option(
        False, "--version", "-v", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Run build tasks, skipping work whose inputs have not changed."""
    try:
        level = parse_log_level(log_level)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    logger = ConsoleLogger(console, level)

    try:
        config = load_config(Path.cwd(), config_file)
        if clean:
            clean_state(logger, config)
            return
        build = create_build(config, logger)
    except (ConfigError, FileSetError) as e:
        logger.fatal(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if list_only:
        list_tasks(logger, build)
        return

    result = asyncio.run(build.run_async(tasks or ["default"], SUCCESS_BANNER))
    if not result.succeeded:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
