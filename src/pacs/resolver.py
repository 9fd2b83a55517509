"""Command resolution against the active project and environment."""

from __future__ import annotations

from dataclasses import dataclass

from pacs.active_state import ActiveStateTracker
from pacs.errors import NoActiveProjectError
from pacs.registry import Project, ProjectRegistry
from pacs.template import expand, missing_keys, placeholders


@dataclass(frozen=True)
class ResolvedCommand:
    """The result of resolving a command.

    Attributes:
        name: Command name.
        project: Owning project name.
        text: Expanded text, or the raw template when no environment applied.
        used_environment: Environment whose values were used, if any.
        complete: True iff an environment was used and every placeholder
            had a value.
        missing: Placeholder keys left unresolved, in first-seen order.
        cwd: The command's working directory, if any.
    """

    name: str
    project: str
    text: str
    used_environment: str | None
    complete: bool
    missing: tuple[str, ...] = ()
    cwd: str | None = None


class Resolver:
    """Resolves command names to their final text."""

    def __init__(self, projects: ProjectRegistry, active: ActiveStateTracker) -> None:
        self.projects = projects
        self.active = active

    def active_project(self) -> Project:
        """Return the active project.

        Raises:
            NoActiveProjectError: If no project is active.
        """
        name = self.active.get_active_project()
        if name is None:
            raise NoActiveProjectError()
        return self.projects.require(name)

    def resolve(
        self,
        command_name: str,
        env_override: str | None = None,
        *,
        project: str | None = None,
    ) -> ResolvedCommand:
        """Resolve a command's text.

        Args:
            command_name: Name of the command in the project.
            env_override: Environment to use instead of the active one.
            project: Project to resolve in. Defaults to the active project.

        Returns:
            The ResolvedCommand. With no environment selected the raw
            template is returned with complete=False.

        Raises:
            NoActiveProjectError: If no project is given and none is active.
            ProjectNotFoundError: If the given project does not exist.
            CommandNotFoundError: If the command does not exist.
            EnvironmentNotFoundError: If env_override does not exist.
        """
        owner = self.projects.require(project) if project is not None else self.active_project()
        command = owner.commands.require(command_name)

        if env_override is not None:
            environment = owner.environments.require(env_override)
        else:
            active_env = self.active.get_active_environment(owner.name)
            environment = owner.environments.get(active_env) if active_env else None

        if environment is None:
            return ResolvedCommand(
                name=command.name,
                project=owner.name,
                text=command.template,
                used_environment=None,
                complete=False,
                missing=tuple(placeholders(command.template)),
                cwd=command.cwd,
            )

        text, complete = expand(command.template, environment.values)
        return ResolvedCommand(
            name=command.name,
            project=owner.name,
            text=text,
            used_environment=environment.name,
            complete=complete,
            missing=tuple(missing_keys(command.template, environment.values)),
            cwd=command.cwd,
        )

    def resolve_all(
        self,
        tag: str | None = None,
        env_override: str | None = None,
        *,
        project: str | None = None,
    ) -> list[ResolvedCommand]:
        """Resolve every command of a project, ordered by name.

        Raises:
            EnvironmentNotFoundError: If env_override does not exist, even
                when no command matches.
        """
        owner = self.projects.require(project) if project is not None else self.active_project()
        if env_override is not None:
            owner.environments.require(env_override)
        return [
            self.resolve(command.name, env_override, project=owner.name)
            for command in owner.commands.list(tag)
        ]
