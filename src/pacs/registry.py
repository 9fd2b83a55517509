"""In-memory registries for projects, commands and environments.

Each Project exclusively owns one CommandRegistry and one
EnvironmentRegistry, so deleting a project drops everything it contains.
Every mutating operation validates first and mutates second: a failed call
leaves the registry exactly as it was.

Listing is always ordered by name.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Protocol

from pacs.errors import (
    CommandNotFoundError,
    DuplicateNameError,
    EnvironmentNotFoundError,
    ProjectNotFoundError,
)
from pacs.models import (
    Command,
    Environment,
    normalize_tags,
    validate_name,
    validate_template,
    validate_values,
)


class RemovalListener(Protocol):
    """Receives notifications after projects or environments are removed."""

    def project_removed(self, project: str) -> None: ...

    def environment_removed(self, project: str, environment: str) -> None: ...


class EnvironmentRegistry:
    """Named environments owned by a single project."""

    def __init__(
        self,
        owner: str,
        environments: Iterable[Environment] = (),
        on_remove: Callable[[str], None] | None = None,
    ) -> None:
        self.owner = owner
        self.on_remove = on_remove
        self._environments: dict[str, Environment] = {}
        for environment in environments:
            if environment.name in self._environments:
                raise DuplicateNameError("environment", environment.name, owner)
            self._environments[environment.name] = environment

    def __contains__(self, name: object) -> bool:
        return name in self._environments

    def __len__(self) -> int:
        return len(self._environments)

    def __iter__(self) -> Iterator[Environment]:
        return iter(self.list())

    def add(self, name: str) -> Environment:
        """Add a new, empty environment.

        Raises:
            ValueError: If the name is invalid.
            DuplicateNameError: If the name already exists in this project.
        """
        validate_name(name, "environment name")
        if name in self._environments:
            raise DuplicateNameError("environment", name, self.owner)
        environment = Environment(name=name)
        self._environments[name] = environment
        return environment

    def get(self, name: str) -> Environment | None:
        return self._environments.get(name)

    def require(self, name: str) -> Environment:
        """Get an environment or raise EnvironmentNotFoundError."""
        environment = self._environments.get(name)
        if environment is None:
            raise EnvironmentNotFoundError(name, self.owner)
        return environment

    def set_values(self, name: str, values: Mapping[str, str]) -> Environment:
        """Replace an environment's whole value map.

        Raises:
            EnvironmentNotFoundError: If the environment does not exist.
            ValueError: If a key or value is invalid.
        """
        environment = self.require(name)
        environment.values = validate_values(values)
        return environment

    def remove(self, name: str) -> Environment:
        """Remove an environment and notify the owner's removal hook.

        Raises:
            EnvironmentNotFoundError: If the environment does not exist.
        """
        environment = self.require(name)
        del self._environments[name]
        if self.on_remove is not None:
            self.on_remove(name)
        return environment

    def list(self) -> list[Environment]:
        return [self._environments[name] for name in sorted(self._environments)]

    def names(self) -> list[str]:
        return sorted(self._environments)


class CommandRegistry:
    """Named command templates owned by a single project."""

    def __init__(self, owner: str, commands: Iterable[Command] = ()) -> None:
        self.owner = owner
        self._commands: dict[str, Command] = {}
        for command in commands:
            if command.name in self._commands:
                raise DuplicateNameError("command", command.name, owner)
            self._commands[command.name] = command

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[Command]:
        return iter(self.list())

    def add(
        self,
        name: str,
        template: str,
        tags: Iterable[str] = (),
        cwd: str | None = None,
    ) -> Command:
        """Add a command.

        Args:
            name: Command name, unique within this project.
            template: Raw template text.
            tags: Optional tags.
            cwd: Optional working directory for runs.

        Returns:
            The stored Command.

        Raises:
            ValueError: If the name, template or a tag is invalid.
            DuplicateNameError: If the name already exists in this project.
        """
        validate_name(name, "command name")
        validate_template(template)
        normalized = normalize_tags(tags)
        if name in self._commands:
            raise DuplicateNameError("command", name, self.owner)
        command = Command(name=name, template=template, tags=normalized, cwd=cwd)
        self._commands[name] = command
        return command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def require(self, name: str) -> Command:
        """Get a command or raise CommandNotFoundError."""
        command = self._commands.get(name)
        if command is None:
            raise CommandNotFoundError(name, self.owner)
        return command

    def edit(self, name: str, template: str) -> Command:
        """Replace a command's template, keeping its name and tags.

        Raises:
            CommandNotFoundError: If the command does not exist.
            ValueError: If the template is empty.
        """
        command = self.require(name)
        validate_template(template)
        updated = replace(command, template=template)
        self._commands[name] = updated
        return updated

    def rename(self, old_name: str, new_name: str) -> Command:
        """Rename a command.

        Raises:
            CommandNotFoundError: If old_name does not exist.
            DuplicateNameError: If new_name already exists.
            ValueError: If new_name is invalid.
        """
        command = self.require(old_name)
        validate_name(new_name, "command name")
        if new_name == old_name:
            return command
        if new_name in self._commands:
            raise DuplicateNameError("command", new_name, self.owner)
        renamed = replace(command, name=new_name)
        del self._commands[old_name]
        self._commands[new_name] = renamed
        return renamed

    def remove(self, name: str) -> Command:
        """Remove a command.

        Raises:
            CommandNotFoundError: If the command does not exist.
        """
        command = self.require(name)
        del self._commands[name]
        return command

    def list(self, tag: str | None = None) -> list[Command]:
        """List commands ordered by name, optionally restricted to one tag.

        Tag matching is exact.
        """
        commands = [self._commands[name] for name in sorted(self._commands)]
        if tag is None:
            return commands
        return [command for command in commands if command.has_tag(tag)]

    def names(self) -> list[str]:
        return sorted(self._commands)

    def tags(self) -> list[str]:
        """Return every distinct tag used in this project, sorted."""
        return sorted({tag for command in self._commands.values() for tag in command.tags})


@dataclass
class Project:
    """A named container owning one command and one environment registry.

    Attributes:
        name: Unique, case-sensitive project name.
        path: Optional filesystem path associated with the project.
        commands: The project's commands.
        environments: The project's environments.
    """

    name: str
    path: str | None = None
    commands: CommandRegistry = field(init=False)
    environments: EnvironmentRegistry = field(init=False)

    def __post_init__(self) -> None:
        self.commands = CommandRegistry(self.name)
        self.environments = EnvironmentRegistry(self.name)

    @classmethod
    def build(
        cls,
        name: str,
        path: str | None = None,
        commands: Iterable[Command] = (),
        environments: Iterable[Environment] = (),
    ) -> Project:
        """Build a project pre-populated with commands and environments."""
        project = cls(name=name, path=path)
        project.commands = CommandRegistry(name, commands)
        project.environments = EnvironmentRegistry(name, environments)
        return project


class ProjectRegistry:
    """All projects in the store, keyed by case-sensitive name."""

    def __init__(self, projects: Iterable[Project] = ()) -> None:
        self._projects: dict[str, Project] = {}
        self._listeners: list[RemovalListener] = []
        self.replace_all(projects)

    def __contains__(self, name: object) -> bool:
        return name in self._projects

    def __len__(self) -> int:
        return len(self._projects)

    def __iter__(self) -> Iterator[Project]:
        return iter(self.list())

    def subscribe(self, listener: RemovalListener) -> None:
        """Register a listener for project and environment removals."""
        self._listeners.append(listener)

    def replace_all(self, projects: Iterable[Project]) -> None:
        """Swap in a new set of projects.

        Raises:
            DuplicateNameError: If two projects share a name. The registry is
                unchanged in that case.
        """
        incoming: dict[str, Project] = {}
        for project in projects:
            if project.name in incoming:
                raise DuplicateNameError("project", project.name)
            incoming[project.name] = project
        for project in incoming.values():
            self._attach(project)
        self._projects = incoming

    def _attach(self, project: Project) -> None:
        project.environments.on_remove = partial(self._environment_removed, project.name)

    def _environment_removed(self, project: str, environment: str) -> None:
        for listener in self._listeners:
            listener.environment_removed(project, environment)

    def add(self, name: str, path: str | None = None) -> Project:
        """Create a project with empty registries.

        Raises:
            ValueError: If the name is invalid.
            DuplicateNameError: If the project already exists.
        """
        validate_name(name, "project name")
        if name in self._projects:
            raise DuplicateNameError("project", name)
        project = Project(name=name, path=path)
        self._attach(project)
        self._projects[name] = project
        return project

    def get(self, name: str) -> Project | None:
        return self._projects.get(name)

    def require(self, name: str) -> Project:
        """Get a project or raise ProjectNotFoundError."""
        project = self._projects.get(name)
        if project is None:
            raise ProjectNotFoundError(name)
        return project

    def remove(self, name: str) -> Project:
        """Remove a project together with its commands and environments.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        project = self.require(name)
        del self._projects[name]
        project.environments.on_remove = None
        for listener in self._listeners:
            listener.project_removed(name)
        return project

    def list(self) -> list[Project]:
        return [self._projects[name] for name in sorted(self._projects)]

    def names(self) -> list[str]:
        return sorted(self._projects)
