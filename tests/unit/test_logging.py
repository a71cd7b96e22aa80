"""Unit tests for logging module."""

import unittest
from unittest.mock import MagicMock, call

from rich.table import Table

from buildtree.console_logger import ConsoleLogger
from buildtree.logging import LogLevel, parse_log_level


class TestConsoleLogger(unittest.TestCase):
    def setUp(self):
        self._console = MagicMock()
        self._logger = ConsoleLogger(self._console)

    def test_forwards_args_and_kwargs(self):
        self._logger.log(LogLevel.INFO, "msg1", "msg2", style="red", end="")
        self._console.print.assert_called_once_with("msg1", "msg2", style="red", end="")

    def test_accepts_rich_renderables(self):
        table = Table(title="Tasks")
        table.add_column("Task")
        table.add_row("compile")

        self._logger.info(table)
        self._console.print.assert_called_once_with(table)

    def test_filters_messages_above_current_level(self):
        self._logger.debug("hidden")
        self._logger.trace("hidden")
        self._logger.info("shown")
        self._logger.error("also shown")

        self.assertEqual(self._console.print.call_args_list, [call("shown"), call("also shown")])

    def test_fatal_is_always_shown(self):
        logger = ConsoleLogger(self._console, LogLevel.FATAL)

        logger.error("hidden")
        logger.fatal("shown")

        self._console.print.assert_called_once_with("shown")

    def test_level_stack(self):
        self._logger.push_level(LogLevel.TRACE)
        self._logger.trace("verbose")
        self.assertEqual(self._logger.level, LogLevel.TRACE)

        self.assertEqual(self._logger.pop_level(), LogLevel.TRACE)
        self._logger.trace("quiet again")

        self._console.print.assert_called_once_with("verbose")
        self.assertEqual(self._logger.level, LogLevel.INFO)

    def test_cannot_pop_base_level(self):
        with self.assertRaises(RuntimeError):
            self._logger.pop_level()


class TestLogLevel(unittest.TestCase):
    def test_severity_order(self):
        levels = list(LogLevel)
        self.assertEqual(levels[0], LogLevel.FATAL)
        self.assertEqual(levels[-1], LogLevel.TRACE)
        self.assertEqual([level.value for level in levels], sorted(level.value for level in levels))

    def test_parse_log_level(self):
        self.assertEqual(parse_log_level("debug"), LogLevel.DEBUG)
        self.assertEqual(parse_log_level(" WARN "), LogLevel.WARN)

    def test_parse_invalid_log_level(self):
        with self.assertRaises(ValueError) as ctx:
            parse_log_level("loud")

        self.assertIn("trace", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
