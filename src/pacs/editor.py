"""Editor collaborator: external editing of command templates and environments.

Commands are edited as their raw template text. Environments are edited as a
single TOML document covering every environment of a project:

    active_environment = "dev"

    [environments.dev.values]
    host = "localhost"
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Any

import click
import tomlkit

from pacs.errors import PacsError
from pacs.registry import Project

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)


class EditorError(PacsError):
    """Raised when the editor fails or returns unusable content."""


@dataclass
class EnvironmentDocument:
    """Parsed environment edit document.

    Attributes:
        active: Environment to activate, if the document names one.
        values: Mapping from environment name to its full value map.
    """

    active: str | None = None
    values: dict[str, dict[str, str]] = field(default_factory=dict)


def edit_text(text: str, *, editor: str | None = None, extension: str = ".txt") -> str:
    """Open text in an external editor and return the edited result.

    Args:
        text: Initial content.
        editor: Editor command. Defaults to click's $VISUAL/$EDITOR lookup.
        extension: Temporary file extension, used for syntax highlighting.

    Raises:
        EditorError: If the editor cannot be launched or exits with an error.
    """
    logger.debug("Launching editor %r", editor)
    try:
        result = click.edit(text, editor=editor, extension=extension, require_save=False)
    except click.ClickException as e:
        raise EditorError(e.format_message()) from e
    if result is None:
        raise EditorError("Editor returned no content")
    return result


def parse_command_text(text: str) -> str:
    """Turn an edited blob into a command template.

    Trailing whitespace is dropped.

    Raises:
        EditorError: If the blob is empty.
    """
    template = text.rstrip()
    if not template.strip():
        raise EditorError("Command cannot be empty")
    return template


def render_environments(project: Project, active: str | None = None) -> str:
    """Render a project's environments as an editable TOML document."""
    doc = tomlkit.document()
    if active is not None:
        doc.add("active_environment", active)
        doc.add(tomlkit.nl())

    environments = tomlkit.table(is_super_table=True)
    for environment in project.environments.list():
        values = tomlkit.table()
        for key, value in environment.sorted_items():
            values.add(key, value)
        wrapper = tomlkit.table(is_super_table=True)
        wrapper.add("values", values)
        environments.add(environment.name, wrapper)
    doc.add("environments", environments)
    return tomlkit.dumps(doc)


def _string_map(data: Any, where: str) -> dict[str, str]:
    if not isinstance(data, dict):
        raise EditorError(f"{where} must be a table")
    result: dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(value, str):
            raise EditorError(f"Value for '{key}' in {where} must be a string")
        result[key] = value
    return result


def parse_environments(text: str) -> EnvironmentDocument:
    """Parse an edited environment document.

    Raises:
        EditorError: If the text is not valid TOML or has the wrong shape.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise EditorError(f"Failed to parse edited TOML: {e}") from e

    active = data.get("active_environment")
    if active is not None and not isinstance(active, str):
        raise EditorError("active_environment must be a string")

    environments = data.get("environments", {})
    if not isinstance(environments, dict):
        raise EditorError("environments must be a table")

    document = EnvironmentDocument(active=active)
    for name, body in environments.items():
        if not isinstance(body, dict):
            raise EditorError(f"Environment '{name}' must be a table")
        document.values[name] = _string_map(body.get("values", {}), f"environment '{name}'")
    return document
