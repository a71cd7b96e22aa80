"""Task registry and fail-fast runner with incremental execution."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Sequence, Union

from rich.traceback import Traceback

from buildtree.file_sets import FileSet, resolve_paths
from buildtree.session import BuildSession

TaskBody = Callable[[], Awaitable[None]]
Dependencies = Union[FileSet, Sequence[Union[str, Path]]]

TASK_MARKER_PAYLOAD = "task ok"


class UnknownTaskError(Exception):
    """Raised when a requested task was never registered."""

    def __init__(self, task_name: str):
        self.task_name = task_name
        super().__init__(f"Task not found: {task_name}")


class DuplicateTaskError(Exception):
    """Raised when a task name is registered twice."""

    def __init__(self, task_name: str):
        self.task_name = task_name
        super().__init__(f"Task already registered: {task_name}")


class TaskSkipped(Exception):
    """
    Raised by a task body that could not do its work and did not fail.

    The task counts as neither run nor failed, and no marker is written, so it
    runs again on the next build.
    """

    pass


class TaskFailure(Exception):
    """Raised when a task body fails. Carries the name of the failing task."""

    def __init__(self, task_name: str, message: str):
        self.task_name = task_name
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class SimpleTask:
    name: str
    body: TaskBody


@dataclass(frozen=True)
class IncrementalTask:
    name: str
    dependencies: Dependencies
    body: TaskBody


Task = Union[SimpleTask, IncrementalTask]


@dataclass
class RunResult:
    """Outcome of Build.run_async()."""

    succeeded: bool
    elapsed: float
    failed_task: Optional[str] = None
    message: Optional[str] = None
    tasks_run: list[str] = field(default_factory=list)


class Build:
    """
    Registry of named tasks plus the runner that executes them.

    Tasks run strictly in the order requested. The first failure stops the
    sequence; markers written by tasks that already finished stay in place.
    """

    def __init__(self, session: BuildSession):
        self.session = session
        self.logger = session.logger
        self._tasks: dict[str, Task] = {}
        self._tasks_run: list[str] = []

    def register_task(self, name: str, body: TaskBody) -> None:
        self._register(SimpleTask(name, body))

    def register_incremental_task(self, name: str, dependencies: Dependencies, body: TaskBody) -> None:
        """
        Register a task whose body only runs when one of its dependencies changed.

        Args:
            name: Unique task name
            dependencies: A FileSet, or paths / glob patterns relative to the source root
            body: Coroutine function doing the work
        """
        if isinstance(dependencies, str):
            dependencies = [dependencies]
        self._register(IncrementalTask(name, dependencies, body))

    def _register(self, task: Task) -> None:
        if task.name in self._tasks:
            raise DuplicateTaskError(task.name)
        self._tasks[task.name] = task

    def get_task(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def task_names(self) -> list[str]:
        return list(self._tasks)

    async def run_tasks_async(self, names: Iterable[str]) -> None:
        """
        Run tasks in order, stopping at the first failure.

        Raises:
            UnknownTaskError: If any name is unknown; nothing runs in that case
            TaskFailure: Identifying the first task that failed
        """
        tasks = [self.get_task(name) for name in names]
        for task in tasks:
            await self._run_task_async(task)

    async def _run_task_async(self, task: Task) -> None:
        try:
            if isinstance(task, IncrementalTask):
                await self._run_incremental_async(task)
            else:
                self.logger.trace(f"Running task '{task.name}'")
                await task.body()
                self._tasks_run.append(task.name)
        except TaskSkipped as e:
            self.logger.warn(f"[yellow]Skipping '{task.name}': {e}[/yellow]")
        except TaskFailure:
            raise
        except Exception as e:
            raise TaskFailure(task.name, str(e) or type(e).__name__) from e

    async def _run_incremental_async(self, task: IncrementalTask) -> None:
        marker = self.session.state.task_marker(task.name)
        if not await self._is_task_modified_async(task, marker):
            self.logger.debug(f"Skipping '{task.name}': dependencies unchanged")
            return

        self.logger.trace(f"Running incremental task '{task.name}'")
        await task.body()
        self._tasks_run.append(task.name)
        await self.write_marker_async(marker, TASK_MARKER_PAYLOAD)

    async def _is_task_modified_async(self, task: IncrementalTask, marker: Path) -> bool:
        if not marker.exists():
            return True
        files = resolve_paths(self.session.root_dir, task.dependencies)
        results = await asyncio.gather(
            *(self.is_modified_async(file, marker) for file in files)
        )
        return any(results)

    async def run_async(self, names: Iterable[str], success_banner: str) -> RunResult:
        """
        Run tasks and report the outcome to the user without raising.

        Prints the success banner and elapsed time on success, or a failure
        banner naming the failing task.
        """
        start = time.monotonic()
        self._tasks_run = []
        try:
            await self.run_tasks_async(list(names))
        except (TaskFailure, UnknownTaskError) as e:
            elapsed = time.monotonic() - start
            failed_task = e.task_name
            message = e.message if isinstance(e, TaskFailure) else str(e)
            self.logger.error("")
            self.logger.error("[bold reverse red]   BUILD FAILURE   [/]")
            self.logger.error(f"[bold red]{failed_task}: {message}[/]")
            cause = e.__cause__
            if cause is not None:
                self.logger.debug(Traceback.from_exception(type(cause), cause, cause.__traceback__))
            return RunResult(
                succeeded=False,
                elapsed=elapsed,
                failed_task=failed_task,
                message=message,
                tasks_run=list(self._tasks_run),
            )

        elapsed = time.monotonic() - start
        self.logger.info("")
        self.logger.info(success_banner)
        self.logger.info(f"[white]({elapsed:.2f}s)[/white]")
        return RunResult(succeeded=True, elapsed=elapsed, tasks_run=list(self._tasks_run))

    async def is_modified_async(self, source_file: Path, marker: Path) -> bool:
        return await self.session.state.is_modified_async(source_file, marker)

    async def write_marker_async(self, marker: Path, payload: str) -> None:
        await self.session.state.write_marker_async(marker, payload)

    def file_marker(self, file: Path, qualifier: str) -> Path:
        return self.session.state.file_marker(file, qualifier)

    def task_marker(self, name: str) -> Path:
        return self.session.state.task_marker(name)
