"""Per-invocation build context.

A BuildSession is created once per build invocation and passed to every
component. It owns all caches (resolved file sets, the import graph and its
closures), so nothing leaks between sequential runs or test cases.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from buildtree.config import BuildConfig
from buildtree.dependency_analysis import (
    DependencyAnalysis,
    ImportExtractor,
    PythonImportExtractor,
)
from buildtree.file_sets import FileSets
from buildtree.logging import Logger
from buildtree.process_runner import ProcessRunner, SubprocessProcessRunner
from buildtree.state import StateManager


class BuildSession:
    def __init__(
        self,
        root_dir: Path,
        incremental_dir: Path,
        logger: Logger,
        process_runner: Optional[ProcessRunner] = None,
        file_sets: Optional[FileSets] = None,
        search_roots: Sequence[Path] = (),
        import_extractor: Optional[ImportExtractor] = None,
    ):
        """
        Args:
            root_dir: Root of the source tree
            incremental_dir: Marker directory, absolute or relative to root_dir
            logger: Logger shared by every component
            process_runner: Runner for external tools (defaults to real subprocesses)
            file_sets: Registry of named file sets (defaults to an empty registry)
            search_roots: Directories used to resolve absolute imports
                          (defaults to root_dir)
            import_extractor: Replaces the Python import extractor
        """
        self.root_dir = Path(root_dir).resolve()
        self.logger = logger
        self.state = StateManager(self.root_dir, incremental_dir, logger)
        self.process_runner = process_runner or SubprocessProcessRunner(logger, cwd=self.root_dir)
        self.file_sets = file_sets or FileSets(self.root_dir, logger)
        self._search_roots = [
            root if Path(root).is_absolute() else self.root_dir / root
            for root in (search_roots or [self.root_dir])
        ]
        self._import_extractor = import_extractor
        self._analysis: Optional[DependencyAnalysis] = None

    @property
    def analysis(self) -> DependencyAnalysis:
        """The session's single dependency analysis, created on first use."""
        if self._analysis is None:
            extractor = self._import_extractor or PythonImportExtractor(self._search_roots, self.logger)
            self._analysis = DependencyAnalysis(self.state.is_modified_async, extractor, self.logger)
        return self._analysis

    @classmethod
    def from_config(
        cls,
        config: BuildConfig,
        logger: Logger,
        process_runner: Optional[ProcessRunner] = None,
    ) -> "BuildSession":
        """Create a session from a loaded BuildConfig."""
        return cls(
            root_dir=config.root_dir,
            incremental_dir=Path(config.incremental_dir),
            logger=logger,
            process_runner=process_runner,
            file_sets=FileSets.from_config(config.root_dir, config.file_sets, logger),
            search_roots=[Path(root) for root in config.search_roots],
        )
