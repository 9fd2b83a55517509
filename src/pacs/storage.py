"""JSON persistence for pacs projects and active state.

Two files live in the data directory:
- projects.json: every project with its commands and environments
- state.json: the active project and per-project active environment

Design decisions:
- Entries are written sorted by name (tags and value keys too) so that
  re-saving an unchanged store is byte-stable
- Writes go to a temporary file in the same directory and are moved into
  place with os.replace, so readers never observe a half-written file
- Every failure surfaces as PersistenceError; nothing is retried here
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pacs.active_state import ActiveState
from pacs.errors import PacsError, PersistenceError
from pacs.models import Command, Environment
from pacs.registry import Project

if TYPE_CHECKING:
    from pacs.config import PacsConfig

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


def project_to_dict(project: Project) -> dict[str, Any]:
    """Convert a project to its JSON-ready form."""
    return {
        "name": project.name,
        "path": project.path,
        "commands": [
            {
                "name": command.name,
                "command": command.template,
                "cwd": command.cwd,
                "tags": command.sorted_tags,
            }
            for command in project.commands.list()
        ],
        "environments": [
            {
                "name": environment.name,
                "values": dict(environment.sorted_items()),
            }
            for environment in project.environments.list()
        ],
    }


def _require(data: dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = data.get(key)
    if not isinstance(value, kind):
        raise PersistenceError(f"Invalid {where}: '{key}' must be a {kind.__name__}")
    return value


def _optional_str(data: dict[str, Any], key: str, where: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise PersistenceError(f"Invalid {where}: '{key}' must be a string")
    return value


def project_from_dict(data: Any) -> Project:
    """Build a project from its JSON form.

    Raises:
        PersistenceError: If the data does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise PersistenceError("Invalid project entry: expected an object")
    name = _require(data, "name", str, "project")
    where = f"project '{name}'"

    raw_commands = data.get("commands", [])
    if not isinstance(raw_commands, list):
        raise PersistenceError(f"Invalid commands in {where}: expected a list")
    commands: list[Command] = []
    for entry in raw_commands:
        if not isinstance(entry, dict):
            raise PersistenceError(f"Invalid command entry in {where}")
        tags = entry.get("tags", [])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise PersistenceError(f"Invalid tags in {where}")
        commands.append(
            Command(
                name=_require(entry, "name", str, f"command in {where}"),
                template=_require(entry, "command", str, f"command in {where}"),
                tags=frozenset(tags),
                cwd=_optional_str(entry, "cwd", f"command in {where}"),
            )
        )

    raw_environments = data.get("environments", [])
    if not isinstance(raw_environments, list):
        raise PersistenceError(f"Invalid environments in {where}: expected a list")
    environments: list[Environment] = []
    for entry in raw_environments:
        if not isinstance(entry, dict):
            raise PersistenceError(f"Invalid environment entry in {where}")
        values = entry.get("values", {})
        if not isinstance(values, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in values.items()
        ):
            raise PersistenceError(f"Invalid environment values in {where}")
        environments.append(
            Environment(
                name=_require(entry, "name", str, f"environment in {where}"),
                values=dict(values),
            )
        )

    try:
        return Project.build(
            name,
            path=_optional_str(data, "path", where),
            commands=commands,
            environments=environments,
        )
    except PacsError as e:
        raise PersistenceError(f"Invalid {where}: {e}") from e


def state_from_dict(data: Any) -> ActiveState:
    """Build an ActiveState from its JSON form.

    Raises:
        PersistenceError: If the data does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise PersistenceError("Invalid state file: expected an object")
    environments = data.get("active_environments", {})
    if not isinstance(environments, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in environments.items()
    ):
        raise PersistenceError("Invalid state file: 'active_environments' must map strings")
    return ActiveState(
        active_project=_optional_str(data, "active_project", "state file"),
        environments=dict(environments),
    )


def dumps(data: dict[str, Any]) -> str:
    """Serialize a document the way it is written to disk."""
    return json.dumps({"version": FORMAT_VERSION, **data}, indent=2, ensure_ascii=False) + "\n"


# -----------------------------------------------------------------------------
# File store
# -----------------------------------------------------------------------------


class JsonStore:
    """File-backed persistence collaborator.

    Attributes:
        home: Data directory holding the store files.
        projects_path: Path of the projects file.
        state_path: Path of the active-state file.
    """

    def __init__(
        self,
        home: str | Path,
        *,
        projects_file: str = "projects.json",
        state_file: str = "state.json",
    ) -> None:
        self.home = Path(home)
        self.projects_path = self.home / projects_file
        self.state_path = self.home / state_file

    @classmethod
    def from_config(cls, config: PacsConfig) -> JsonStore:
        return cls(
            config.get_home_path(),
            projects_file=config.projects_file,
            state_file=config.state_file,
        )

    def initialize(self) -> bool:
        """Create the data directory and empty store files if missing.

        Returns:
            True if anything was created.

        Raises:
            PersistenceError: If the files cannot be written.
        """
        created = False
        if not self.projects_path.exists():
            self._write(self.projects_path, dumps({"projects": []}))
            created = True
        if not self.state_path.exists():
            self._write(self.state_path, dumps(ActiveState().to_dict()))
            created = True
        return created

    def _read(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e
        if not text.strip():
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Failed to parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Failed to parse {path}: expected an object")
        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise PersistenceError(f"Unsupported format version {version!r} in {path}")
        logger.debug("Loaded %s", path)
        return data

    def _write(self, path: Path, text: str) -> None:
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        logger.debug("Wrote %s", path)

    def load(self) -> list[Project]:
        """Load every project.

        Raises:
            PersistenceError: If the file cannot be read or is malformed.
        """
        data = self._read(self.projects_path)
        if data is None:
            return []
        entries = data.get("projects", [])
        if not isinstance(entries, list):
            raise PersistenceError(f"Invalid {self.projects_path}: 'projects' must be a list")
        projects = [project_from_dict(entry) for entry in entries]
        names = [project.name for project in projects]
        if len(names) != len(set(names)):
            raise PersistenceError(f"Invalid {self.projects_path}: duplicate project names")
        return projects

    def save(self, projects: Iterable[Project]) -> None:
        """Write every project, sorted by name.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        ordered = sorted(projects, key=lambda project: project.name)
        self._write(
            self.projects_path,
            dumps({"projects": [project_to_dict(project) for project in ordered]}),
        )

    def load_active_state(self) -> ActiveState:
        """Load the active state, or an empty one if none was saved.

        Raises:
            PersistenceError: If the file cannot be read or is malformed.
        """
        data = self._read(self.state_path)
        if data is None:
            return ActiveState()
        return state_from_dict(data)

    def save_active_state(self, state: ActiveState) -> None:
        """Write the active state.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        self._write(self.state_path, dumps(state.to_dict()))
