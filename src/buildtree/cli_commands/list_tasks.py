from __future__ import annotations

from rich.table import Table

from buildtree.build import Build, IncrementalTask
from buildtree.file_sets import FileSet
from buildtree.logging import Logger


def list_tasks(logger: Logger, build: Build) -> None:
    """
    List all registered tasks, showing which are incremental.
    """
    table = Table(show_edge=False, show_header=False, box=None, padding=(0, 2))
    table.add_column("Task", style="bold cyan", no_wrap=True)
    table.add_column("Kind", style="white")
    table.add_column("Dependencies", style="white", max_width=60)

    for name in build.task_names():
        task = build.get_task(name)
        if isinstance(task, IncrementalTask):
            dependencies = task.dependencies
            if isinstance(dependencies, FileSet):
                described = f"file set '{dependencies.name}'"
            else:
                described = ", ".join(str(d) for d in dependencies)
            table.add_row(name, "incremental", described)
        else:
            table.add_row(name, "simple", "")

    logger.info(table)
