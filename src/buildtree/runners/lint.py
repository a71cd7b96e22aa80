"""Linter driver.

Runs the configured lint command once per file so that every file gets its
own verdict. Output from the linter streams directly to the user.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from buildtree.logging import Logger
from buildtree.process_runner import ProcessRunner, RunnerResult


async def run_async(
    process_runner: ProcessRunner,
    logger: Logger,
    header: str,
    files: Sequence[Path],
    command: Sequence[str],
) -> RunnerResult:
    """
    Lint files in order.

    Args:
        process_runner: Runner used to start the linter
        logger: Logger for the header and progress dots
        header: Label shown before linting starts
        files: Files to lint, in order
        command: Linter executable and arguments; the file path is appended

    Returns:
        RunnerResult whose pass_files lists the files the linter accepted
    """
    if not files:
        return RunnerResult(failed=False)

    logger.info(f"{header}: ", end="")
    executable, *args = command
    pass_files = []
    for file in files:
        exit_code = await process_runner.run_interactive_async(executable, [*args, str(file)])
        if exit_code == 0:
            pass_files.append(str(file))
            logger.info(".", end="")
        else:
            logger.debug(f"\n{file} failed lint with exit code {exit_code}")
    logger.info("")

    return RunnerResult(failed=len(pass_files) != len(files), pass_files=tuple(pass_files))
