from rich.console import Console

from buildtree.logging import Logger, LogLevel


class ConsoleLogger(Logger):
    """Logger that prints through a Rich console.

    Messages more verbose than the active level are dropped. The active level
    is the top of a stack, so a caller can raise or lower verbosity for a
    stretch of work and then restore it.
    """

    def __init__(self, console: Console, level: LogLevel = LogLevel.INFO) -> None:
        self._console = console
        self._levels = [level]

    @property
    def level(self) -> LogLevel:
        return self._levels[-1]

    def log(self, level: LogLevel = LogLevel.INFO, *args, **kwargs) -> None:
        """Forward args and kwargs to Console.print() if level is enabled."""
        if level.value <= self.level.value:
            self._console.print(*args, **kwargs)

    def push_level(self, level: LogLevel) -> None:
        self._levels.append(level)

    def pop_level(self) -> LogLevel:
        if len(self._levels) == 1:
            raise RuntimeError("Cannot pop the base log level")
        return self._levels.pop()
