"""Front-end adapter: user actions as discrete events.

An interactive front-end turns each user input into one of the event
variants below and passes it to Controller.handle(). Each event maps to a
single vault or resolver call; the front-end then re-renders from
Controller.view().
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Union

from pacs.resolver import ResolvedCommand
from pacs.shell import copy_to_clipboard, run_command
from pacs.vault import Vault


@dataclass(frozen=True)
class SelectProject:
    name: str


@dataclass(frozen=True)
class SelectEnvironment:
    name: str


@dataclass(frozen=True)
class SelectCommand:
    name: str


@dataclass(frozen=True)
class Copy:
    pass


@dataclass(frozen=True)
class Run:
    pass


@dataclass(frozen=True)
class ToggleTag:
    tag: str


Event = Union[SelectProject, SelectEnvironment, SelectCommand, Copy, Run, ToggleTag]


@dataclass
class ViewState:
    """Everything a front-end needs to render one frame."""

    projects: list[str] = field(default_factory=list)
    active_project: str | None = None
    environments: list[str] = field(default_factory=list)
    active_environment: str | None = None
    commands: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    tag_filter: str | None = None
    selected_command: str | None = None
    resolved: ResolvedCommand | None = None


class Controller:
    """Dispatches front-end events to the vault.

    Attributes:
        vault: The loaded vault.
        selected_command: Name of the selected command in the active project.
        tag_filter: Tag the command list is restricted to, if any.
    """

    def __init__(
        self,
        vault: Vault,
        *,
        clipboard: Callable[[str], None] = copy_to_clipboard,
        runner: Callable[..., int] = run_command,
        shell: str = "sh",
    ) -> None:
        self.vault = vault
        self.clipboard = clipboard
        self.runner = runner
        self.shell = shell
        self.selected_command: str | None = None
        self.tag_filter: str | None = None
        self._handlers: dict[type, Callable[[Any], object]] = {
            SelectProject: self._select_project,
            SelectEnvironment: self._select_environment,
            SelectCommand: self._select_command,
            Copy: self._copy,
            Run: self._run,
            ToggleTag: self._toggle_tag,
        }

    def handle(self, event: Event) -> object:
        """Apply one event.

        Returns:
            The copied text for Copy, the exit status for Run, otherwise None.

        Raises:
            TypeError: If the event is not one of the known variants.
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown event: {event!r}")
        return handler(event)

    def _select_project(self, event: SelectProject) -> None:
        self.vault.switch_project(event.name)
        self.selected_command = None
        self.tag_filter = None

    def _select_environment(self, event: SelectEnvironment) -> None:
        self.vault.switch_environment(event.name)

    def _select_command(self, event: SelectCommand) -> None:
        self.vault.get_command(event.name)
        self.selected_command = event.name

    def _toggle_tag(self, event: ToggleTag) -> None:
        self.tag_filter = None if self.tag_filter == event.tag else event.tag
        if self.selected_command is not None:
            command = self.vault.get_command(self.selected_command)
            if self.tag_filter is not None and not command.has_tag(self.tag_filter):
                self.selected_command = None

    def _resolve_selected(self) -> ResolvedCommand | None:
        if self.selected_command is None:
            return None
        return self.vault.resolve(self.selected_command)

    def _copy(self, event: Copy) -> str | None:
        resolved = self._resolve_selected()
        if resolved is None:
            return None
        text = resolved.text.strip()
        self.clipboard(text)
        return text

    def _run(self, event: Run) -> int | None:
        resolved = self._resolve_selected()
        if resolved is None:
            return None
        return self.runner(resolved.text, cwd=resolved.cwd, shell=self.shell)

    def view(self) -> ViewState:
        """Snapshot of what the front-end should display."""
        state = ViewState(
            projects=self.vault.projects.names(),
            active_project=self.vault.active_project_name(),
            tag_filter=self.tag_filter,
            selected_command=self.selected_command,
        )
        if state.active_project is None:
            return state

        project = self.vault.project(state.active_project)
        state.environments = project.environments.names()
        state.active_environment = self.vault.active.get_active_environment(project.name)
        state.commands = [command.name for command in project.commands.list(self.tag_filter)]
        state.tags = project.commands.tags()
        if self.selected_command is not None and self.selected_command in project.commands:
            state.resolved = self.vault.resolve(self.selected_command)
        return state
