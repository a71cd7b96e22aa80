"""The standard build graph: clean, lint, test, compile, bundle and typecheck."""

from __future__ import annotations

import asyncio
import shutil
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from buildtree.build import Build, TaskSkipped
from buildtree.config import BuildConfig
from buildtree.logging import Logger
from buildtree.process_runner import ExternalToolFailure, ProcessRunner, check_exit_code
from buildtree.runners import RUN_TESTS_SCRIPT, lint
from buildtree.session import BuildSession

LINT_QUALIFIER = "lint"
TEST_QUALIFIER = "test"


@asynccontextmanager
async def timed_step(logger: Logger, label: str) -> AsyncIterator[None]:
    """Print a step label, run the step, then print its elapsed time."""
    start = time.monotonic()
    logger.info(f"{label}: ", end="")
    yield
    logger.info(f"[white] ({time.monotonic() - start:.2f}s)[/white]")


def register_standard_tasks(build: Build, config: BuildConfig) -> None:
    """
    Register the standard tasks on build, driven by config.

    A task whose tool is missing from config.tools is skipped: it logs a
    warning and writes no marker, so it runs once the tool is configured.
    """
    session = build.session
    logger = build.logger
    file_sets = session.file_sets
    runner = session.process_runner

    def require_tool(tool: str) -> list[str]:
        command = config.tools.get(tool)
        if not command:
            raise TaskSkipped(f"No '{tool}' tool configured")
        return command

    async def run_tool_async(command: list[str], failure_message: str) -> None:
        executable, *args = command
        exit_code = await runner.run_interactive_async(executable, args)
        check_exit_code(exit_code, failure_message)

    async def default() -> None:
        await build.run_tasks_async(["clean", "quick", "bundle", "typecheck"])

    async def quick() -> None:
        await build.run_tasks_async(["lint", "test"])

    async def clean() -> None:
        generated_dir = config.path(config.generated_dir)
        async with timed_step(logger, "Deleting generated files"):
            if generated_dir == session.root_dir or generated_dir in session.root_dir.parents:
                raise ValueError(f"Refusing to clean '{generated_dir}': it contains the project")
            if generated_dir.exists():
                for child in generated_dir.iterdir():
                    if child.is_dir() and not child.is_symlink():
                        await asyncio.to_thread(shutil.rmtree, child)
                    else:
                        child.unlink()
            logger.info(".", end="")

    async def lint_task() -> None:
        command = require_tool("lint")

        candidates = file_sets.get("lint").files()
        modified = await asyncio.gather(
            *(build.is_modified_async(file, build.file_marker(file, LINT_QUALIFIER)) for file in candidates)
        )
        files_to_lint = [file for file, is_modified in zip(candidates, modified) if is_modified]
        logger.debug(f"{len(files_to_lint)} of {len(candidates)} file(s) need linting")

        result = await lint.run_async(runner, logger, "Linting", files_to_lint, command)

        await asyncio.gather(
            *(
                build.write_marker_async(build.file_marker(Path(file), LINT_QUALIFIER), "lint ok")
                for file in result.pass_files
            )
        )
        if result.failed:
            raise ExternalToolFailure("Lint failed")

    async def test() -> None:
        await build.run_tasks_async(["compile"])

        analysis = session.analysis
        test_files = file_sets.get("test_files").files()
        async with timed_step(logger, "Analyzing dependencies"):
            await analysis.update_analysis_async(file_sets.get("test_dependencies"))
            await analysis.update_analysis_async(test_files)
            logger.info(".", end="")

        dirty = await asyncio.gather(
            *(
                analysis.is_dependency_modified_async(file, build.file_marker(file, TEST_QUALIFIER))
                for file in test_files
            )
        )
        files_to_test = [str(file) for file, is_dirty in zip(test_files, dirty) if is_dirty]
        if not files_to_test:
            logger.debug("No test files affected by changes")
            return

        result = await runner.run_isolated_async(RUN_TESTS_SCRIPT, ["Testing", *files_to_test])

        if result.failed:
            raise ExternalToolFailure("Tests failed")

        await asyncio.gather(
            *(
                build.write_marker_async(build.file_marker(Path(file), TEST_QUALIFIER), "test ok")
                for file in result.pass_files
            )
        )

    async def compile_task() -> None:
        command = require_tool("compile")
        async with timed_step(logger, "Compiling"):
            await run_tool_async(command, "Compile failed")
            logger.info(".", end="")

    async def bundle() -> None:
        await build.run_tasks_async(["compile"])
        command = config.tools.get("bundle")
        async with timed_step(logger, "Bundling"):
            if command:
                await run_tool_async(command, "Bundler failed")
            logger.info(".", end="")
            await asyncio.to_thread(copy_static_files)
        if not command:
            raise TaskSkipped("No 'bundle' tool configured")

    def copy_static_files() -> None:
        if not (config.bundle.dir and config.bundle.static_files):
            return
        bundle_dir = config.path(config.bundle.dir)
        static_root = config.path(config.bundle.static_root or ".")
        for file in file_sets.get(config.bundle.static_files).files():
            destination = bundle_dir / file.relative_to(static_root)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(file, destination)
            logger.info(".", end="")

    async def typecheck() -> None:
        command = require_tool("typecheck")
        async with timed_step(logger, "Type-checking"):
            await run_tool_async(command, "Type check failed")
            logger.info(".", end="")

    compile_dependencies = file_sets.get("compile_dependencies")

    build.register_task("default", default)
    build.register_task("quick", quick)
    build.register_task("clean", clean)
    build.register_task("lint", lint_task)
    build.register_task("test", test)
    build.register_incremental_task("compile", compile_dependencies, compile_task)
    build.register_incremental_task("bundle", compile_dependencies, bundle)
    build.register_incremental_task("typecheck", compile_dependencies, typecheck)


def create_build(
    config: BuildConfig, logger: Logger, process_runner: Optional[ProcessRunner] = None
) -> Build:
    """Create a session and Build with the standard tasks registered."""
    session = BuildSession.from_config(config, logger, process_runner)
    build = Build(session)
    register_standard_tasks(build, config)
    return build
