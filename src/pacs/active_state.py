"""Active project and per-project active environment tracking.

The active state lives outside the project data and has its own lifecycle.
ActiveStateTracker is the only writer: every change goes through it, is
validated against the ProjectRegistry, and is persisted immediately through
the save callback. Pointers to removed projects or environments are cleared
as soon as the registry reports the removal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pacs.errors import EnvironmentNotFoundError, ProjectNotFoundError
from pacs.registry import ProjectRegistry

logger = logging.getLogger(__name__)


@dataclass
class ActiveState:
    """Persisted record of the active project and active environments.

    Attributes:
        active_project: Name of the active project, if any.
        environments: Mapping from project name to its active environment.
    """

    active_project: str | None = None
    environments: dict[str, str] = field(default_factory=dict)

    def copy(self) -> ActiveState:
        return ActiveState(self.active_project, dict(self.environments))

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_project": self.active_project,
            "active_environments": dict(sorted(self.environments.items())),
        }


class ActiveStateTracker:
    """Owns the active-state record and enforces its invariants."""

    def __init__(
        self,
        projects: ProjectRegistry,
        state: ActiveState | None = None,
        save: Callable[[ActiveState], None] | None = None,
    ) -> None:
        """Initialize the tracker.

        Pointers in ``state`` that reference missing projects or environments
        are dropped; if any were dropped the cleaned state is saved.

        Args:
            projects: Registry used to validate pointers.
            state: Previously persisted state. Defaults to an empty state.
            save: Called with the new state after every change.
        """
        self.projects = projects
        self._save = save
        self._state = ActiveState()
        projects.subscribe(self)
        if state is not None:
            self._state = state.copy()
            if self.prune():
                self._persist()

    @property
    def state(self) -> ActiveState:
        """Return a copy of the current state."""
        return self._state.copy()

    def _persist(self) -> None:
        if self._save is not None:
            self._save(self._state.copy())

    def _commit(self, state: ActiveState) -> None:
        """Save a new state, then make it current.

        If the save raises, the current state is left as it was.
        """
        if self._save is not None:
            self._save(state.copy())
        self._state = state

    def restore(self, state: ActiveState, *, persist: bool = False) -> None:
        """Replace the current state wholesale, used for rollback."""
        self._state = state.copy()
        if persist:
            self._persist()

    def prune(self) -> bool:
        """Drop pointers that reference missing projects or environments.

        Returns:
            True if anything was dropped.
        """
        changed = False
        active = self._state.active_project
        if active is not None and active not in self.projects:
            logger.debug("Dropping dangling active project %r", active)
            self._state.active_project = None
            changed = True

        for project_name, env_name in list(self._state.environments.items()):
            project = self.projects.get(project_name)
            if project is None or env_name not in project.environments:
                logger.debug(
                    "Dropping dangling active environment %r for project %r",
                    env_name,
                    project_name,
                )
                del self._state.environments[project_name]
                changed = True
        return changed

    # Active project

    def get_active_project(self) -> str | None:
        return self._state.active_project

    def set_active_project(self, name: str) -> None:
        """Make a project active.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        self.projects.require(name)
        state = self._state.copy()
        state.active_project = name
        self._commit(state)
        logger.debug("Active project set to %r", name)

    def clear_active_project(self) -> None:
        state = self._state.copy()
        state.active_project = None
        self._commit(state)
        logger.debug("Active project cleared")

    # Active environment

    def get_active_environment(self, project_name: str) -> str | None:
        return self._state.environments.get(project_name)

    def set_active_environment(self, project_name: str, env_name: str) -> None:
        """Make an environment active for its project.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            EnvironmentNotFoundError: If the environment does not exist in it.
        """
        project = self.projects.get(project_name)
        if project is None:
            raise ProjectNotFoundError(project_name)
        if env_name not in project.environments:
            raise EnvironmentNotFoundError(env_name, project_name)
        state = self._state.copy()
        state.environments[project_name] = env_name
        self._commit(state)
        logger.debug("Active environment for %r set to %r", project_name, env_name)

    def clear_active_environment(self, project_name: str) -> None:
        if project_name not in self._state.environments:
            return
        state = self._state.copy()
        del state.environments[project_name]
        self._commit(state)
        logger.debug("Active environment for %r cleared", project_name)

    # Registry notifications

    def project_removed(self, project: str) -> None:
        state = self._state.copy()
        if state.active_project == project:
            state.active_project = None
        state.environments.pop(project, None)
        if state != self._state:
            self._commit(state)
            logger.debug("Cleared active pointers for removed project %r", project)

    def environment_removed(self, project: str, environment: str) -> None:
        if self._state.environments.get(project) == environment:
            self.clear_active_environment(project)
