"""
Configuration loading for Build Tree.

A project is configured by a `buildtree.yaml` file at its root. Settings from
the user-level config file (see get_user_config_path()) apply underneath it:
any top-level key the project file sets wins, except `file_sets` and `tools`
which are merged entry by entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import platformdirs
import yaml

from buildtree.file_sets import FileSetSpec

__all__ = [
    "BuildConfig",
    "BundleConfig",
    "ConfigError",
    "PROJECT_CONFIG_FILE",
    "find_project_config",
    "get_user_config_path",
    "load_config",
    "parse_config_file",
]

PROJECT_CONFIG_FILE = "buildtree.yaml"

TOOL_NAMES = ("lint", "compile", "bundle", "typecheck")

DEFAULT_FILE_SETS = {
    "lint": FileSetSpec(include=["**/*.py"], exclude=["generated/**/*", ".venv/**/*"]),
    "compile_dependencies": FileSetSpec(),
    "test_files": FileSetSpec(include=["tests/**/test_*.py"]),
    "test_dependencies": FileSetSpec(union=["lint", "compile_dependencies"]),
}


class ConfigError(Exception):
    """
    Raised when a configuration file is invalid.
    """

    pass


@dataclass
class BundleConfig:
    """Where the bundle task copies static files."""

    dir: str = ""
    static_root: str = ""
    static_files: str = ""


@dataclass
class BuildConfig:
    """Resolved build configuration for one project."""

    root_dir: Path
    generated_dir: str = "generated"
    incremental_dir: str = "generated/incremental"
    search_roots: list[str] = field(default_factory=lambda: [".", "src"])
    file_sets: dict[str, FileSetSpec] = field(default_factory=lambda: dict(DEFAULT_FILE_SETS))
    tools: dict[str, list[str]] = field(default_factory=dict)
    bundle: BundleConfig = field(default_factory=BundleConfig)

    def path(self, relative: str) -> Path:
        """Resolve a configured path against the project root."""
        return (self.root_dir / relative).resolve()


def get_user_config_path() -> Path:
    """
    Get the path to the user-level configuration file.

    Uses platformdirs to determine the appropriate user config directory
    for the current platform, then appends 'buildtree/config.yml'.
    """
    config_dir: Path = Path(platformdirs.user_config_dir("buildtree"))
    return config_dir / "config.yml"


def find_project_config(start_dir: Path) -> Optional[Path]:
    """
    Walk up the directory tree from start_dir to find buildtree.yaml.

    Returns:
        Path to the config file if found, None otherwise
    """
    try:
        current = start_dir.resolve()
    except (OSError, RuntimeError):
        return None

    for directory in (current, *current.parents):
        config_path = directory / PROJECT_CONFIG_FILE
        try:
            if config_path.is_file():
                return config_path
        except OSError:
            continue

    return None


def _require(path: Path, key: str, value: Any, expected: type, description: str) -> Any:
    if not isinstance(value, expected):
        raise ConfigError(f"Error in config file '{path}': Field '{key}' must be {description}")
    return value


def _string_list(path: Path, key: str, value: Any) -> list[str]:
    _require(path, key, value, list, "a list of strings")
    if not all(isinstance(item, str) for item in value):
        raise ConfigError(f"Error in config file '{path}': Field '{key}' must be a list of strings")
    return list(value)


def _parse_file_sets(path: Path, data: Any) -> dict[str, FileSetSpec]:
    _require(path, "file_sets", data, dict, "a dictionary")
    specs = {}
    for name, spec in data.items():
        if spec is None:
            spec = {}
        _require(path, f"file_sets.{name}", spec, dict, "a dictionary")
        unknown = set(spec) - {"include", "exclude", "union"}
        if unknown:
            raise ConfigError(
                f"Error in config file '{path}': Unknown field(s) in file set '{name}': "
                f"{', '.join(sorted(unknown))}"
            )
        specs[name] = FileSetSpec(
            include=_string_list(path, f"file_sets.{name}.include", spec.get("include", [])),
            exclude=_string_list(path, f"file_sets.{name}.exclude", spec.get("exclude", [])),
            union=_string_list(path, f"file_sets.{name}.union", spec.get("union", [])),
        )
    return specs


def _parse_tools(path: Path, data: Any) -> dict[str, list[str]]:
    _require(path, "tools", data, dict, "a dictionary")
    tools = {}
    for name, command in data.items():
        if name not in TOOL_NAMES:
            raise ConfigError(
                f"Error in config file '{path}': Unknown tool '{name}'. "
                f"Valid tools: {', '.join(TOOL_NAMES)}"
            )
        if isinstance(command, str):
            command = command.split()
        command = _string_list(path, f"tools.{name}", command)
        if not command:
            raise ConfigError(f"Error in config file '{path}': Command for tool '{name}' is empty")
        tools[name] = command
    return tools


def parse_config_file(path: Path) -> dict[str, Any]:
    """
    Parse and validate a buildtree configuration file.

    Empty files and missing files are valid and yield an empty dictionary.

    Returns:
        Validated settings, keyed like the YAML file

    Raises:
        ConfigError: If the file cannot be read, is malformed YAML, or has
                     fields of the wrong type
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Error reading config file '{path}': {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML in config file '{path}': {e}") from e

    if data is None:
        return {}
    _require(path, "<root>", data, dict, "a dictionary")

    settings: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("generated_dir", "incremental_dir"):
            settings[key] = _require(path, key, value, str, "a string")
        elif key == "search_roots":
            settings[key] = _string_list(path, key, value)
        elif key == "file_sets":
            settings[key] = _parse_file_sets(path, value)
        elif key == "tools":
            settings[key] = _parse_tools(path, value)
        elif key == "bundle":
            _require(path, key, value, dict, "a dictionary")
            bundle = {}
            for field_name in ("dir", "static_root", "static_files"):
                if field_name in value:
                    bundle[field_name] = _require(
                        path, f"bundle.{field_name}", value[field_name], str, "a string"
                    )
            settings[key] = BundleConfig(**bundle)
        else:
            raise ConfigError(f"Error in config file '{path}': Unknown field '{key}'")
    return settings


def _apply(config: BuildConfig, settings: dict[str, Any]) -> None:
    for key, value in settings.items():
        if key == "file_sets":
            config.file_sets.update(value)
        elif key == "tools":
            config.tools.update(value)
        else:
            setattr(config, key, value)


def load_config(start_dir: Path, config_path: Optional[Path] = None) -> BuildConfig:
    """
    Load the effective configuration for the project containing start_dir.

    Args:
        start_dir: Directory to search upwards from
        config_path: Explicit project config file, bypassing the search

    Raises:
        ConfigError: If no project config exists or a config file is invalid
    """
    if config_path is None:
        config_path = find_project_config(start_dir)
        if config_path is None:
            raise ConfigError(f"No {PROJECT_CONFIG_FILE} found in {start_dir} or its parents")
    elif not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    config = BuildConfig(root_dir=config_path.resolve().parent)
    _apply(config, parse_config_file(get_user_config_path()))
    _apply(config, parse_config_file(config_path))
    return config
