"""Session facade over the pacs store.

The Vault loads projects and active state from a JsonStore, wires the
registries, the ActiveStateTracker and the Resolver together, and runs every
project mutation as a load-mutate-save unit. If anything inside a
transaction raises, the in-memory projects and active pointers are restored
to their state before the transaction and the error propagates unchanged.

Example usage:
    >>> vault = Vault.open(load_config())
    >>> vault.add_project("demo", activate=True)
    >>> vault.add_command("hello", 'echo "Hello {{name}}"')
    >>> vault.resolve("hello").text
    'echo "Hello {{name}}"'
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager

from pacs.active_state import ActiveStateTracker
from pacs.config import PacsConfig
from pacs.errors import PersistenceError
from pacs.models import Command, Environment, validate_values
from pacs.registry import Project, ProjectRegistry
from pacs.resolver import ResolvedCommand, Resolver
from pacs.storage import JsonStore, project_from_dict, project_to_dict

logger = logging.getLogger(__name__)


class Vault:
    """Loaded store plus the registries, tracker and resolver built on it.

    Attributes:
        store: Persistence collaborator.
        projects: All projects.
        active: Active project/environment tracker.
        resolver: Command resolver.
    """

    def __init__(self, store: JsonStore) -> None:
        """Load the store.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        self.store = store
        self.projects = ProjectRegistry(store.load())
        self.active = ActiveStateTracker(
            self.projects,
            store.load_active_state(),
            save=store.save_active_state,
        )
        self.resolver = Resolver(self.projects, self.active)
        self._in_transaction = False

    @classmethod
    def open(cls, config: PacsConfig) -> Vault:
        return cls(JsonStore.from_config(config))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block as one unit of work.

        Saves the projects when the block succeeds. On any exception the
        registries and active pointers are rolled back and the exception
        re-raised. Nested transactions are no-ops.
        """
        if self._in_transaction:
            yield
            return

        projects_snapshot = [project_to_dict(project) for project in self.projects.list()]
        state_snapshot = self.active.state
        self._in_transaction = True
        try:
            yield
            self.store.save(self.projects.list())
        except Exception:
            logger.debug("Rolling back transaction")
            self.projects.replace_all(project_from_dict(data) for data in projects_snapshot)
            state_changed = self.active.state != state_snapshot
            try:
                self.active.restore(state_snapshot, persist=state_changed)
            except PersistenceError as e:
                logger.warning("Failed to restore active state during rollback: %s", e)
            raise
        finally:
            self._in_transaction = False

    def project(self, name: str | None = None) -> Project:
        """Return the named project, or the active one when name is None.

        Raises:
            ProjectNotFoundError: If the named project does not exist.
            NoActiveProjectError: If name is None and no project is active.
        """
        if name is not None:
            return self.projects.require(name)
        return self.resolver.active_project()

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    def add_project(self, name: str, path: str | None = None, *, activate: bool = False) -> Project:
        with self.transaction():
            project = self.projects.add(name, path)
            if activate:
                self.active.set_active_project(name)
        return project

    def remove_project(self, name: str) -> Project:
        with self.transaction():
            return self.projects.remove(name)

    def list_projects(self) -> list[Project]:
        return self.projects.list()

    def switch_project(self, name: str) -> None:
        self.active.set_active_project(name)

    def clear_project(self) -> None:
        self.active.clear_active_project()

    def active_project_name(self) -> str | None:
        return self.active.get_active_project()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def add_command(
        self,
        name: str,
        template: str,
        tags: Iterable[str] = (),
        cwd: str | None = None,
        *,
        project: str | None = None,
    ) -> Command:
        owner = self.project(project)
        with self.transaction():
            return owner.commands.add(name, template, tags, cwd)

    def get_command(self, name: str, *, project: str | None = None) -> Command:
        return self.project(project).commands.require(name)

    def edit_command(self, name: str, template: str, *, project: str | None = None) -> Command:
        owner = self.project(project)
        with self.transaction():
            return owner.commands.edit(name, template)

    def rename_command(self, old_name: str, new_name: str, *, project: str | None = None) -> Command:
        owner = self.project(project)
        with self.transaction():
            return owner.commands.rename(old_name, new_name)

    def remove_command(self, name: str, *, project: str | None = None) -> Command:
        owner = self.project(project)
        with self.transaction():
            return owner.commands.remove(name)

    def list_commands(self, tag: str | None = None, *, project: str | None = None) -> list[Command]:
        return self.project(project).commands.list(tag)

    def search(self, query: str) -> list[tuple[str, Command]]:
        """Find commands across all projects by name or template text.

        Matching is case-insensitive. Results are ordered by name prefix
        match, then name substring match, then template match, then by
        project and command name.

        Returns:
            List of (project name, command) pairs.
        """
        needle = query.strip().lower()
        if not needle:
            return []

        ranked: list[tuple[int, str, str, Command]] = []
        for owner in self.projects.list():
            for command in owner.commands.list():
                name = command.name.lower()
                if name.startswith(needle):
                    rank = 0
                elif needle in name:
                    rank = 1
                elif needle in command.template.lower():
                    rank = 2
                else:
                    continue
                ranked.append((rank, owner.name, command.name, command))

        ranked.sort(key=lambda item: item[:3])
        return [(project_name, command) for _, project_name, _, command in ranked]

    # -------------------------------------------------------------------------
    # Environments
    # -------------------------------------------------------------------------

    def add_environment(
        self, name: str, *, project: str | None = None, activate: bool = False
    ) -> Environment:
        owner = self.project(project)
        with self.transaction():
            environment = owner.environments.add(name)
            if activate:
                self.active.set_active_environment(owner.name, name)
        return environment

    def remove_environment(self, name: str, *, project: str | None = None) -> Environment:
        owner = self.project(project)
        with self.transaction():
            return owner.environments.remove(name)

    def set_environment_values(
        self, name: str, values: Mapping[str, str], *, project: str | None = None
    ) -> Environment:
        owner = self.project(project)
        with self.transaction():
            return owner.environments.set_values(name, values)

    def apply_environment_values(
        self,
        values_by_environment: Mapping[str, Mapping[str, str]],
        active: str | None = None,
        *,
        project: str | None = None,
    ) -> None:
        """Swap in several value maps and optionally change the active environment.

        Every environment and the active name are checked before anything is
        changed.

        Raises:
            EnvironmentNotFoundError: If a named environment does not exist.
            ValueError: If a value map is invalid.
        """
        owner = self.project(project)
        for env_name, values in values_by_environment.items():
            owner.environments.require(env_name)
            validate_values(values)
        if active is not None:
            owner.environments.require(active)

        with self.transaction():
            for env_name, values in values_by_environment.items():
                owner.environments.set_values(env_name, values)
            if active is not None:
                self.active.set_active_environment(owner.name, active)

    def list_environments(self, *, project: str | None = None) -> list[Environment]:
        return self.project(project).environments.list()

    def switch_environment(self, name: str, *, project: str | None = None) -> None:
        owner = self.project(project)
        self.active.set_active_environment(owner.name, name)

    def clear_environment(self, *, project: str | None = None) -> None:
        owner = self.project(project)
        self.active.clear_active_environment(owner.name)

    def active_environment(self, *, project: str | None = None) -> str | None:
        owner = self.project(project)
        return self.active.get_active_environment(owner.name)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve(
        self, name: str, env: str | None = None, *, project: str | None = None
    ) -> ResolvedCommand:
        return self.resolver.resolve(name, env, project=project)

    def resolve_all(
        self, tag: str | None = None, env: str | None = None, *, project: str | None = None
    ) -> list[ResolvedCommand]:
        return self.resolver.resolve_all(tag, env, project=project)
