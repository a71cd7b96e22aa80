"""Logging infrastructure for Build Tree.

Provides the Logger interface that every component receives by injection.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod


class LogLevel(enum.Enum):
    """Log verbosity levels for buildtree diagnostic messages.

    Lower numeric values represent higher severity / less verbosity.
    """
    FATAL = 0  # Only unrecoverable errors (unreadable config, unknown tasks)
    ERROR = 1  # Fatal errors plus task failures
    WARN = 2   # Errors plus warnings about skipped analysis, unconfigured tools
    INFO = 3   # Warnings plus normal build progress (default)
    DEBUG = 4  # Info plus resolved paths, selected files, tool command lines
    TRACE = 5  # Debug plus per-file marker decisions


class Logger(ABC):
    """
    Abstract logger with level filtering and a stack of temporary levels.
    """

    @abstractmethod
    def log(self, level: LogLevel = LogLevel.INFO, *args, **kwargs) -> None:
        ...

    @abstractmethod
    def push_level(self, level: LogLevel) -> None:
        ...

    @abstractmethod
    def pop_level(self) -> LogLevel:
        ...

    def fatal(self, *args, **kwargs) -> None:
        self.log(LogLevel.FATAL, *args, **kwargs)

    def error(self, *args, **kwargs) -> None:
        self.log(LogLevel.ERROR, *args, **kwargs)

    def warn(self, *args, **kwargs) -> None:
        self.log(LogLevel.WARN, *args, **kwargs)

    def info(self, *args, **kwargs) -> None:
        self.log(LogLevel.INFO, *args, **kwargs)

    def debug(self, *args, **kwargs) -> None:
        self.log(LogLevel.DEBUG, *args, **kwargs)

    def trace(self, *args, **kwargs) -> None:
        self.log(LogLevel.TRACE, *args, **kwargs)


def parse_log_level(name: str) -> LogLevel:
    """
    Convert a case-insensitive level name (e.g. "debug") into a LogLevel.

    Raises:
        ValueError: If the name does not match any level
    """
    try:
        return LogLevel[name.strip().upper()]
    except KeyError:
        valid = ", ".join(level.name.lower() for level in LogLevel)
        raise ValueError(f"Invalid log level '{name}'. Valid levels: {valid}") from None
