"""Pytest fixtures for Build Tree tests."""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def no_user_config(tmp_path_factory, monkeypatch):
    """Keep the developer's own user-level config out of every test."""
    missing = Path(tmp_path_factory.mktemp("user-config")) / "config.yml"
    monkeypatch.setattr("buildtree.config.get_user_config_path", lambda: missing)
    return missing
