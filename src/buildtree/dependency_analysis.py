"""Import-graph analysis for transitive modification checks."""

from __future__ import annotations

import ast
import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from buildtree.file_sets import FileSet
from buildtree.logging import Logger

ImportExtractor = Callable[[Path], Iterable[Path]]
ModificationCheck = Callable[[Path, Path], Awaitable[bool]]


class PythonImportExtractor:
    """
    Find the files a Python module imports.

    Absolute imports are looked up under each search root; relative imports
    are resolved against the importing file's package. Only files that exist
    are returned, so standard library and third-party imports drop out.
    Parent package `__init__.py` files count as dependencies because importing
    a submodule executes them.
    """

    def __init__(self, search_roots: Sequence[Path], logger: Optional[Logger] = None):
        self.search_roots = tuple(Path(root).resolve() for root in search_roots)
        self._logger = logger

    def __call__(self, file: Path) -> set[Path]:
        file = Path(file)
        try:
            tree = ast.parse(file.read_text(encoding="utf-8"), filename=str(file))
        except (SyntaxError, UnicodeDecodeError) as e:
            if self._logger:
                self._logger.warn(f"[yellow]Skipping import analysis of {file}: {e}[/yellow]")
            return set()

        found: set[Path] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    found.update(self._absolute(alias.name.split(".")))
            elif isinstance(node, ast.ImportFrom):
                if node.level:
                    base = file.parent
                    for _ in range(node.level - 1):
                        base = base.parent
                    found.update(self._from_import(base, node))
                elif node.module:
                    parts = node.module.split(".")
                    found.update(self._absolute(parts))
                    for root in self.search_roots:
                        found.update(self._submodules(root.joinpath(*parts), node))

        found.discard(file.resolve())
        return found

    def _absolute(self, parts: list[str]) -> set[Path]:
        found: set[Path] = set()
        for root in self.search_roots:
            found.update(_module_files(root, parts))
        return found

    def _from_import(self, base: Path, node: ast.ImportFrom) -> set[Path]:
        parts = node.module.split(".") if node.module else []
        found = _module_files(base, parts) if parts else _package_init(base)
        found.update(self._submodules(base.joinpath(*parts), node))
        return found

    @staticmethod
    def _submodules(package_dir: Path, node: ast.ImportFrom) -> set[Path]:
        # `from pkg import name` may name a submodule rather than an attribute
        found: set[Path] = set()
        for alias in node.names:
            if alias.name != "*":
                found.update(_module_file(package_dir / alias.name))
        return found


def _package_init(directory: Path) -> set[Path]:
    init = directory / "__init__.py"
    return {init.resolve()} if init.is_file() else set()


def _module_file(path: Path) -> set[Path]:
    module = path.with_name(path.name + ".py")
    if module.is_file():
        return {module.resolve()}
    return _package_init(path)


def _module_files(base: Path, parts: list[str]) -> set[Path]:
    found: set[Path] = set()
    current = base
    for index, part in enumerate(parts):
        current = current / part
        if index < len(parts) - 1:
            found.update(_package_init(current))
    target = _module_file(current)
    if not target:
        return set()
    return found | target


class DependencyAnalysis:
    """
    In-memory import graph for one build session.

    The graph is built by update_analysis_async() and never persisted.
    is_dependency_modified_async() extends a single-file marker check to
    everything the file transitively imports.
    """

    def __init__(
        self,
        is_modified_async: ModificationCheck,
        extractor: ImportExtractor,
        logger: Optional[Logger] = None,
    ):
        """
        Args:
            is_modified_async: Single-file check, (source, marker) -> modified
            extractor: Pure function from a file to the files it imports
            logger: Optional logger for diagnostic output
        """
        self._is_modified_async = is_modified_async
        self._extractor = extractor
        self._logger = logger
        self._graph: dict[Path, frozenset[Path]] = {}
        self._closures: dict[Path, frozenset[Path]] = {}

    @property
    def graph(self) -> dict[Path, frozenset[Path]]:
        return dict(self._graph)

    async def update_analysis_async(self, root_file_set: FileSet | Iterable[Path]) -> None:
        """
        Add the given files to the import graph.

        Files already analyzed in this session are not parsed again.
        """
        pending = [
            Path(file).resolve()
            for file in root_file_set
            if Path(file).resolve() not in self._graph
        ]
        if not pending:
            return

        imports = await asyncio.gather(
            *(asyncio.to_thread(self._extractor, file) for file in pending)
        )
        for file, imported in zip(pending, imports):
            self._graph[file] = frozenset(Path(dep).resolve() for dep in imported)

        # New edges can extend closures computed earlier.
        self._closures.clear()
        if self._logger:
            edges = sum(len(deps) for deps in self._graph.values())
            self._logger.debug(
                f"Dependency analysis: {len(self._graph)} file(s), {edges} import edge(s)"
            )

    def dependencies_of(self, file: Path) -> frozenset[Path]:
        """
        All files reachable from file through import edges, excluding file itself
        unless it is part of an import cycle.
        """
        file = Path(file).resolve()
        cached = self._closures.get(file)
        if cached is not None:
            return cached

        visited: set[Path] = set()
        stack = list(self._graph.get(file, ()))
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            known = self._closures.get(current)
            if known is not None:
                visited.update(known)
                continue
            stack.extend(self._graph.get(current, ()))

        closure = frozenset(visited)
        self._closures[file] = closure
        return closure

    async def is_dependency_modified_async(self, file: Path, marker: Path) -> bool:
        file = Path(file).resolve()
        candidates = [file, *sorted(self.dependencies_of(file) - {file})]
        results = await asyncio.gather(
            *(self._is_modified_async(candidate, marker) for candidate in candidates)
        )
        if self._logger and any(results):
            changed = [str(c) for c, modified in zip(candidates, results) if modified]
            self._logger.trace(f"{file} is dirty because of: {', '.join(changed)}")
        return any(results)
