"""Collaborator runners: the linter driver and the isolated test runner script."""

from pathlib import Path

RUN_TESTS_SCRIPT = Path(__file__).with_name("run_tests.py")
