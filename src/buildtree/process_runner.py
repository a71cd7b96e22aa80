"""Process execution abstraction layer.

Two ways of running external code:

* interactive: the tool inherits our stdin/stdout/stderr, so its diagnostics
  stream straight to the user, and only the exit code comes back;
* isolated: a Python script runs in a separate spawned process and reports
  exactly one result message through a pipe before it exits.
"""

from __future__ import annotations

import asyncio
import multiprocessing
import os
import runpy
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from multiprocessing.connection import Connection
from pathlib import Path
from typing import Any, Optional, Sequence

from buildtree.logging import Logger

__all__ = [
    "ExternalToolFailure",
    "IsolatedProcessFailure",
    "ProcessRunner",
    "RunnerResult",
    "SubprocessProcessRunner",
    "check_exit_code",
    "send_result",
]


class ExternalToolFailure(Exception):
    """Raised when an external tool exits non-zero or cannot be started."""

    pass


class IsolatedProcessFailure(Exception):
    """Raised when an isolated process exits without sending its result."""

    def __init__(self, script_path: str, exit_code: Optional[int]):
        self.script_path = script_path
        self.exit_code = exit_code
        super().__init__(
            f"'{Path(script_path).name}' exited with code {exit_code} without reporting a result"
        )


@dataclass(frozen=True)
class RunnerResult:
    """
    Outcome reported by the linter or the isolated test runner.
    """

    failed: bool
    pass_files: tuple[str, ...] = field(default_factory=tuple)

    def to_message(self) -> dict[str, Any]:
        return {"failed": self.failed, "pass_files": list(self.pass_files)}

    @classmethod
    def from_message(cls, message: Any) -> "RunnerResult":
        """
        Validate a message received from an isolated process.

        Raises:
            ValueError: If the message does not have the expected shape
        """
        if not isinstance(message, dict):
            raise ValueError(f"Expected a result dictionary, got {type(message).__name__}")
        failed = message.get("failed")
        pass_files = message.get("pass_files", [])
        if not isinstance(failed, bool):
            raise ValueError("Result field 'failed' must be a boolean")
        if not isinstance(pass_files, list) or not all(isinstance(f, str) for f in pass_files):
            raise ValueError("Result field 'pass_files' must be a list of strings")
        return cls(failed=failed, pass_files=tuple(pass_files))


def check_exit_code(exit_code: int, message: str) -> None:
    """Translate a non-zero exit code into an ExternalToolFailure with a fixed message."""
    if exit_code != 0:
        raise ExternalToolFailure(message)


class ProcessRunner(ABC):
    """
    Abstract interface for running external processes.
    """

    @abstractmethod
    async def run_interactive_async(self, executable: str, args: Sequence[str]) -> int:
        """
        Run a tool with inherited standard streams.

        Returns:
            The tool's exit code

        Raises:
            ExternalToolFailure: If the tool cannot be started
        """
        ...

    @abstractmethod
    async def run_isolated_async(self, script_path: Path, args: Sequence[str]) -> RunnerResult:
        """
        Run a Python script in a separate process and wait for its one result.

        Raises:
            IsolatedProcessFailure: If the process exits without a result
        """
        ...


# Set in the child process of run_isolated_async().
_result_connection: Optional[Connection] = None


def send_result(failed: bool, pass_files: Sequence[str]) -> None:
    """
    Report the result of an isolated run back to the parent process.

    May be called only once, from a script started by run_isolated_async().
    """
    global _result_connection
    if _result_connection is None:
        raise RuntimeError("send_result() can only be called once, from an isolated process")
    connection, _result_connection = _result_connection, None
    connection.send(RunnerResult(failed, tuple(pass_files)).to_message())
    connection.close()


def _isolated_main(
    script_path: str, args: list[str], connection: Connection, cwd: Optional[str]
) -> None:
    global _result_connection
    if cwd is not None:
        os.chdir(cwd)
    _result_connection = connection
    sys.argv = [script_path, *args]
    runpy.run_path(script_path, run_name="__main__")


def _receive_one(connection: Connection) -> Any:
    try:
        return connection.recv()
    except EOFError:
        return None


class SubprocessProcessRunner(ProcessRunner):
    """
    Process runner backed by asyncio subprocesses and spawned multiprocessing children.
    """

    def __init__(self, logger: Logger, cwd: Optional[Path] = None) -> None:
        self._logger = logger
        self._cwd = cwd

    async def run_interactive_async(self, executable: str, args: Sequence[str]) -> int:
        self._logger.debug(f"Running: {executable} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                cwd=self._cwd,
            )
        except OSError as e:
            raise ExternalToolFailure(f"Could not start '{executable}': {e}") from e
        return await process.wait()

    async def run_isolated_async(self, script_path: Path, args: Sequence[str]) -> RunnerResult:
        script = str(script_path)
        self._logger.debug(f"Spawning isolated process: {script} ({len(args)} argument(s))")

        context = multiprocessing.get_context("spawn")
        receiver, sender = context.Pipe(duplex=False)
        process = context.Process(
            target=_isolated_main,
            args=(script, list(args), sender, str(self._cwd) if self._cwd else None),
            name=f"isolated-{Path(script).stem}",
        )
        process.start()
        # Only the child may hold the sending end, so EOF means it exited.
        sender.close()

        try:
            message = await asyncio.to_thread(_receive_one, receiver)
        finally:
            await asyncio.to_thread(process.join)
            receiver.close()

        self._logger.trace(f"Isolated process exited with code {process.exitcode}")
        if message is None:
            raise IsolatedProcessFailure(script, process.exitcode)
        return RunnerResult.from_message(message)
