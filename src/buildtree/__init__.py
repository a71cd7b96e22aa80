"""Build Tree - an incremental build orchestrator."""

__version__ = "0.1.0"

from buildtree.build import (
    Build,
    DuplicateTaskError,
    IncrementalTask,
    RunResult,
    SimpleTask,
    TaskFailure,
    TaskSkipped,
    UnknownTaskError,
)
from buildtree.config import BuildConfig, ConfigError, load_config
from buildtree.dependency_analysis import DependencyAnalysis, PythonImportExtractor
from buildtree.file_sets import FileSet, FileSetError, FileSets
from buildtree.process_runner import (
    ExternalToolFailure,
    IsolatedProcessFailure,
    ProcessRunner,
    RunnerResult,
    SubprocessProcessRunner,
)
from buildtree.session import BuildSession
from buildtree.state import StateManager

__all__ = [
    "__version__",
    "Build",
    "BuildConfig",
    "BuildSession",
    "ConfigError",
    "DependencyAnalysis",
    "DuplicateTaskError",
    "ExternalToolFailure",
    "FileSet",
    "FileSetError",
    "FileSets",
    "IncrementalTask",
    "IsolatedProcessFailure",
    "ProcessRunner",
    "PythonImportExtractor",
    "RunResult",
    "RunnerResult",
    "SimpleTask",
    "StateManager",
    "SubprocessProcessRunner",
    "TaskFailure",
    "TaskSkipped",
    "UnknownTaskError",
    "load_config",
]
