"""Configuration management for the pacs CLI.

Handles configuration loading from multiple sources with precedence:
CLI args > environment variables > .pacsrc > defaults
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

CONFIG_FILENAME = ".pacsrc"


@dataclass
class PacsConfig:
    """Configuration for the pacs CLI tool.

    Attributes:
        home: Data directory (default: "~/.pacs")
        projects_file: Name of the projects file (default: "projects.json")
        state_file: Name of the active-state file (default: "state.json")
        editor: Editor command; falls back to $VISUAL, $EDITOR, then "vi"
        shell: Shell used to run commands (default: "sh")
    """

    home: str = "~/.pacs"
    projects_file: str = "projects.json"
    state_file: str = "state.json"
    editor: str | None = None
    shell: str = "sh"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if not self.home or not isinstance(self.home, str):
            raise ValueError("home must be a non-empty string")

        for name in ("projects_file", "state_file"):
            value = getattr(self, name)
            if not value or not isinstance(value, str):
                raise ValueError(f"{name} must be a non-empty string")
            if not value.endswith(".json"):
                raise ValueError(f"{name} must end with .json")
        if self.projects_file == self.state_file:
            raise ValueError("projects_file and state_file must differ")

        if self.editor is not None and (not isinstance(self.editor, str) or not self.editor.strip()):
            raise ValueError("editor must be a non-empty string")

        if not self.shell or not isinstance(self.shell, str):
            raise ValueError("shell must be a non-empty string")

    def get_home_path(self) -> Path:
        """Get the data directory with ``~`` expanded."""
        return Path(self.home).expanduser()

    def get_editor(self) -> str:
        """Get the editor command.

        Returns:
            The configured editor, else $VISUAL, else $EDITOR, else "vi".
        """
        return self.editor or os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"


def _get_config_field_names() -> set[str]:
    """Get the set of valid configuration field names."""
    return {f.name for f in fields(PacsConfig)}


def find_config_file(filename: str = CONFIG_FILENAME, start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Searches for the specified file starting from start_dir (or current directory)
    and traversing up to the filesystem root, then falls back to the home
    directory.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    home_config = Path.home() / filename
    if home_config.is_file():
        return home_config
    return None


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _load_from_pacsrc(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from a .pacsrc file.

    Returns:
        Dictionary containing configuration from .pacsrc, or empty dict if not found.
    """
    config_path = find_config_file(CONFIG_FILENAME, start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
    except (tomllib.TOMLDecodeError, OSError):
        return {}
    valid_fields = _get_config_field_names()
    return {k: v for k, v in data.items() if k in valid_fields}


def _load_from_env() -> dict[str, Any]:
    """Load configuration from environment variables.

    Environment variables are prefixed with PACS_ and use uppercase names.
    For example: PACS_HOME, PACS_EDITOR, PACS_SHELL

    Returns:
        Dictionary containing configuration from environment variables.
    """
    env_mapping = {
        "PACS_HOME": "home",
        "PACS_PROJECTS_FILE": "projects_file",
        "PACS_STATE_FILE": "state_file",
        "PACS_EDITOR": "editor",
        "PACS_SHELL": "shell",
    }

    result: dict[str, Any] = {}
    for env_var, config_key in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result[config_key] = value

    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple configuration dictionaries.

    Later dictionaries take precedence over earlier ones.
    """
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> PacsConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. CLI arguments (cli_overrides)
    2. Environment variables (PACS_*)
    3. .pacsrc file
    4. Default values

    Args:
        cli_overrides: Configuration overrides from CLI arguments.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved PacsConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    pacsrc_config = _load_from_pacsrc(start_dir)
    env_config = _load_from_env()

    valid_fields = _get_config_field_names()
    cli_config = {
        k: v for k, v in (cli_overrides or {}).items() if k in valid_fields and v is not None
    }

    merged = _merge_configs(pacsrc_config, env_config, cli_config)
    return PacsConfig(**merged)
