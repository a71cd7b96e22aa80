"""Clean state command implementation."""

from __future__ import annotations

from buildtree.cli_commands import get_action_success_string
from buildtree.config import BuildConfig
from buildtree.logging import Logger
from buildtree.state import StateManager


def clean_state(logger: Logger, config: BuildConfig) -> None:
    """
    Remove the incremental-state directory so every task runs on the next build.
    """
    state = StateManager(config.root_dir, config.path(config.incremental_dir), logger)

    if state.clear():
        logger.info(
            f"[green]{get_action_success_string()} Removed {state.incremental_dir}[/green]",
        )
        logger.info("All tasks will run fresh on next build")
    else:
        logger.info(f"[yellow]No incremental state found at {state.incremental_dir}[/yellow]")
