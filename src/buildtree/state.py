"""Incremental state: marker files and timestamp comparison.

A marker is an ordinary file whose only meaningful property is its mtime. It
records "this artifact passed as of the marker's own timestamp". The layout
under the incremental root mirrors the source tree:

    <incremental_dir>/files/<relative-path>.<qualifier>
    <incremental_dir>/tasks/<task-name>.task
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from buildtree.logging import Logger

FILES_DIR = "files"
TASKS_DIR = "tasks"
TASK_QUALIFIER = "task"


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


def is_modified(source_file: Path, marker: Path) -> bool:
    """
    Check whether source_file changed since marker was written.

    Returns True when the source is missing, when no marker exists, or when
    the source mtime is strictly newer than the marker mtime.
    """
    source_mtime = _mtime(source_file)
    if source_mtime is None:
        return True

    marker_mtime = _mtime(marker)
    if marker_mtime is None:
        return True

    return source_mtime > marker_mtime


def write_marker(marker: Path, payload: str) -> None:
    """
    Write a marker file, creating missing parent directories.

    The payload goes to a temporary sibling which then replaces the marker, so
    an interrupted write leaves either the previous marker or none at all.
    """
    marker.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{marker.name}.", suffix=".tmp", dir=marker.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, marker)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


async def is_modified_async(source_file: Path, marker: Path) -> bool:
    return await asyncio.to_thread(is_modified, Path(source_file), Path(marker))


async def write_marker_async(marker: Path, payload: str) -> None:
    await asyncio.to_thread(write_marker, Path(marker), payload)


class StateManager:
    """
    Manages the incremental-state directory.
    """

    def __init__(self, root_dir: Path, incremental_dir: Path, logger: Optional[Logger] = None):
        """
        Initialize state manager.

        Args:
            root_dir: Root of the source tree; marker paths mirror paths below it
            incremental_dir: Directory holding all markers
            logger: Optional logger for diagnostic output
        """
        self.root_dir = Path(root_dir).resolve()
        incremental_dir = Path(incremental_dir)
        if not incremental_dir.is_absolute():
            incremental_dir = self.root_dir / incremental_dir
        self.incremental_dir = incremental_dir
        self.logger = logger

    def relative_path(self, file: Path) -> Path:
        """
        Normalize a file to a path relative to the source root.

        Raises:
            ValueError: If the file lies outside the source root
        """
        file = Path(file)
        if not file.is_absolute():
            file = self.root_dir / file
        for candidate in (Path(os.path.normpath(file)), file.resolve()):
            try:
                return candidate.relative_to(self.root_dir)
            except ValueError:
                continue
        raise ValueError(f"'{file}' is outside the source root '{self.root_dir}'")

    def file_marker(self, file: Path, qualifier: str) -> Path:
        relative = self.relative_path(file)
        return self.incremental_dir / FILES_DIR / f"{relative.as_posix()}.{qualifier}"

    def task_marker(self, task_name: str) -> Path:
        return self.incremental_dir / TASKS_DIR / f"{task_name}.{TASK_QUALIFIER}"

    async def is_modified_async(self, source_file: Path, marker: Path) -> bool:
        source_file = Path(source_file)
        if not source_file.is_absolute():
            source_file = self.root_dir / source_file
        modified = await is_modified_async(source_file, marker)
        if self.logger:
            self.logger.trace(
                f"{source_file} {'modified' if modified else 'unchanged'} relative to {marker}"
            )
        return modified

    async def write_marker_async(self, marker: Path, payload: str) -> None:
        if self.logger:
            self.logger.trace(f"Writing marker {marker}")
        await write_marker_async(marker, payload)

    def clear(self) -> bool:
        """
        Delete the whole incremental-state directory.

        Returns:
            True if a directory was removed, False if none existed
        """
        if not self.incremental_dir.exists():
            return False
        if self.logger:
            self.logger.debug(f"Removing incremental state at {self.incremental_dir}")
        shutil.rmtree(self.incremental_dir)
        return True
