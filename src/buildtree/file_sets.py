"""Named, memoized include/exclude file sets."""

from __future__ import annotations

from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from buildtree.logging import Logger

__all__ = [
    "FileSet",
    "FileSetError",
    "FileSetSpec",
    "FileSets",
    "resolve_paths",
]


class FileSetError(Exception):
    """Raised when a file set definition is invalid or refers to an unknown set."""

    pass


class FileSetSpec:
    """Declarative form of a file set, as read from configuration."""

    def __init__(
        self,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        union: Sequence[str] = (),
    ):
        self.include = tuple(include)
        self.exclude = tuple(exclude)
        self.union = tuple(union)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSetSpec):
            return NotImplemented
        return (self.include, self.exclude, self.union) == (
            other.include,
            other.exclude,
            other.union,
        )

    def __repr__(self) -> str:
        return f"FileSetSpec(include={self.include!r}, exclude={self.exclude!r}, union={self.union!r})"


def _glob(root: Path, patterns: Iterable[str]) -> set[Path]:
    matches: set[Path] = set()
    for pattern in patterns:
        for match in root.glob(pattern):
            if match.is_file():
                matches.add(match)
    return matches


class FileSet:
    """
    An ordered set of absolute file paths, resolved once and then reused.

    A set is the union of its `union` members and its own `include` patterns,
    minus its `exclude` patterns. Patterns are globs relative to `root`.
    """

    def __init__(
        self,
        name: str,
        root: Path,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        union: Sequence["FileSet"] = (),
        logger: Optional[Logger] = None,
    ):
        self.name = name
        self.root = Path(root).resolve()
        self.include = tuple(include)
        self.exclude = tuple(exclude)
        self.union = tuple(union)
        self._logger = logger
        self._files: Optional[tuple[Path, ...]] = None

    def files(self) -> tuple[Path, ...]:
        if self._files is None:
            found: set[Path] = set()
            for member in self.union:
                found.update(member.files())
            found.update(_glob(self.root, self.include))
            found.difference_update(_glob(self.root, self.exclude))
            self._files = tuple(sorted(found))
            if self._logger:
                self._logger.debug(f"File set '{self.name}' resolved to {len(self._files)} file(s)")
        return self._files

    def __iter__(self):
        return iter(self.files())

    def __len__(self) -> int:
        return len(self.files())

    def __repr__(self) -> str:
        return f"FileSet({self.name!r})"


class FileSets:
    """
    Registry of file sets for one build session.
    """

    def __init__(self, root: Path, logger: Optional[Logger] = None):
        self.root = Path(root).resolve()
        self._logger = logger
        self._sets: dict[str, FileSet] = {}

    def define(
        self,
        name: str,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        union: Sequence[str] = (),
    ) -> FileSet:
        """
        Declare a named file set.

        Args:
            name: Unique set name
            include: Glob patterns to add
            exclude: Glob patterns removed from the final set
            union: Names of previously defined sets to include

        Raises:
            FileSetError: If the name is taken or a union member is unknown
        """
        if name in self._sets:
            raise FileSetError(f"File set '{name}' is already defined")
        members = [self.get(member) for member in union]
        file_set = FileSet(name, self.root, include, exclude, members, self._logger)
        self._sets[name] = file_set
        return file_set

    def get(self, name: str) -> FileSet:
        try:
            return self._sets[name]
        except KeyError:
            raise FileSetError(f"Unknown file set: {name}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._sets

    def names(self) -> list[str]:
        return list(self._sets)

    @classmethod
    def from_config(
        cls,
        root: Path,
        specs: Mapping[str, FileSetSpec],
        logger: Optional[Logger] = None,
    ) -> "FileSets":
        """
        Build a registry from configuration, in dependency order.

        Raises:
            FileSetError: On unknown union members or cyclic unions
        """
        graph: dict[str, set[str]] = {}
        for name, spec in specs.items():
            for member in spec.union:
                if member not in specs:
                    raise FileSetError(f"File set '{name}' refers to unknown file set '{member}'")
            graph[name] = set(spec.union)

        try:
            order = list(TopologicalSorter(graph).static_order())
        except CycleError as e:
            raise FileSetError(f"File set cycle detected: {e.args[1]}") from e

        registry = cls(root, logger)
        for name in order:
            spec = specs[name]
            registry.define(name, spec.include, spec.exclude, spec.union)
        return registry


def resolve_paths(root: Path, dependencies: Iterable[str | Path] | FileSet) -> tuple[Path, ...]:
    """
    Turn an incremental task's dependency declaration into absolute paths.

    Accepts a FileSet, or paths and glob patterns relative to root. Plain
    paths are kept even when the file does not exist, so a missing dependency
    still counts as modified.
    """
    if isinstance(dependencies, FileSet):
        return dependencies.files()
    root = Path(root).resolve()
    resolved = []
    for dependency in dependencies:
        if isinstance(dependency, str) and any(c in dependency for c in "*?["):
            resolved.extend(sorted(_glob(root, [dependency])))
            continue
        path = Path(dependency)
        resolved.append(path if path.is_absolute() else root / path)
    return tuple(resolved)
