"""Integration tests for the bt command line."""

import os
import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from typer.testing import CliRunner

from helpers.files import write_file
from helpers.io import strip_ansi_codes
from buildtree import __version__
from buildtree.cli import app


def tool(code: str) -> str:
    """YAML flow list running a Python one-liner as an external tool."""
    return f"['{sys.executable}', '-c', '{code}']"


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self.env = {"NO_COLOR": "1"}
        self._tmpdir = TemporaryDirectory()
        self.root = Path(self._tmpdir.name).resolve()

    def tearDown(self):
        self._tmpdir.cleanup()

    def invoke(self, *args: str):
        result = self.runner.invoke(app, list(args), env=self.env)
        return result, strip_ansi_codes(result.stdout)

    def write_config(self, content: str) -> Path:
        return write_file(self.root / "buildtree.yaml", content)

    def test_version(self):
        result, output = self.invoke("--version")

        self.assertEqual(result.exit_code, 0)
        self.assertIn(f"buildtree version {__version__}", output)

    def test_list_tasks(self):
        config = self.write_config("")

        result, output = self.invoke("--config", str(config), "--list")

        self.assertEqual(result.exit_code, 0)
        for name in ["default", "quick", "clean", "lint", "test", "compile", "bundle", "typecheck"]:
            self.assertIn(name, output)
        self.assertIn("incremental", output)

    def test_successful_task_prints_banner(self):
        config = self.write_config(f"tools:\n  compile: {tool('pass')}\n")

        result, output = self.invoke("--config", str(config), "compile")

        self.assertEqual(result.exit_code, 0)
        self.assertIn("BUILD OK", output)
        self.assertTrue((self.root / "generated" / "incremental" / "tasks" / "compile.task").exists())

    def test_failing_task_exits_with_one_and_names_task(self):
        config = self.write_config(f"tools:\n  typecheck: {tool('import sys; sys.exit(3)')}\n")

        result, output = self.invoke("--config", str(config), "typecheck")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("BUILD FAILURE", output)
        self.assertIn("typecheck: Type check failed", output)
        self.assertNotIn("BUILD OK", output)

    def test_unknown_task(self):
        config = self.write_config("")

        result, output = self.invoke("--config", str(config), "deploy")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Task not found: deploy", output)

    def test_finds_config_from_working_directory(self):
        self.write_config(f"tools:\n  compile: {tool('pass')}\n")
        nested = self.root / "src" / "pkg"
        nested.mkdir(parents=True)

        original_cwd = os.getcwd()
        try:
            os.chdir(nested)
            result, output = self.invoke("compile")
        finally:
            os.chdir(original_cwd)

        self.assertEqual(result.exit_code, 0)
        self.assertTrue((self.root / "generated" / "incremental" / "tasks" / "compile.task").exists())

    def test_clean_state(self):
        config = self.write_config("")
        marker = write_file(self.root / "generated" / "incremental" / "tasks" / "compile.task", "task ok")

        result, output = self.invoke("--config", str(config), "--clean-state")

        self.assertEqual(result.exit_code, 0)
        self.assertIn("Removed", output)
        self.assertFalse(marker.exists())

        result, output = self.invoke("--config", str(config), "--reset")

        self.assertEqual(result.exit_code, 0)
        self.assertIn("No incremental state found", output)

    def test_missing_config_file(self):
        result, output = self.invoke("--config", str(self.root / "nope.yaml"), "compile")

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Config file not found", output)

    def test_invalid_config(self):
        config = self.write_config("tools:\n  deploy: ship-it\n")

        result, output = self.invoke("--config", str(config))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("'deploy'", output)

    def test_cyclic_file_sets(self):
        config = self.write_config("file_sets:\n  a:\n    union: [b]\n  b:\n    union: [a]\n")

        result, output = self.invoke("--config", str(config))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("cycle", output)

    def test_invalid_log_level(self):
        result, output = self.invoke("--log-level", "loud")

        self.assertEqual(result.exit_code, 2)
        self.assertIn("Invalid log level", output)


if __name__ == "__main__":
    unittest.main()
