"""Exception hierarchy for pacs.

Every error raised by the registries, the active-state tracker, the resolver
and the persistence layer derives from PacsError so callers can handle them
uniformly. Missing placeholder values are not errors.
"""

from __future__ import annotations


class PacsError(Exception):
    """Base exception for all pacs errors."""


class DuplicateNameError(PacsError):
    """Raised when adding an entity whose name already exists in its scope."""

    def __init__(self, kind: str, name: str, project: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.project = project
        where = f" in project '{project}'" if project is not None else ""
        super().__init__(f"{kind.capitalize()} '{name}' already exists{where}")


class ProjectNotFoundError(PacsError):
    """Raised when a named project does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Project '{name}' not found")


class CommandNotFoundError(PacsError):
    """Raised when a named command does not exist in its project."""

    def __init__(self, name: str, project: str | None = None) -> None:
        self.name = name
        self.project = project
        where = f" in project '{project}'" if project is not None else ""
        super().__init__(f"Command '{name}' not found{where}")


class EnvironmentNotFoundError(PacsError):
    """Raised when a named environment does not exist in its project."""

    def __init__(self, name: str, project: str | None = None) -> None:
        self.name = name
        self.project = project
        where = f" in project '{project}'" if project is not None else ""
        super().__init__(f"Environment '{name}' not found{where}")


class NoActiveProjectError(PacsError):
    """Raised when a project-scoped operation runs with no active project."""

    def __init__(self) -> None:
        super().__init__(
            "No active project. Use 'pacs project add' to create one "
            "or 'pacs project switch' to activate one."
        )


class PersistenceError(PacsError):
    """Raised when loading or saving the store fails."""
