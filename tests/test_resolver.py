"""Tests for pacs.resolver module."""

from __future__ import annotations

import pytest

from pacs.active_state import ActiveStateTracker
from pacs.errors import (
    CommandNotFoundError,
    EnvironmentNotFoundError,
    NoActiveProjectError,
    ProjectNotFoundError,
)
from pacs.registry import ProjectRegistry
from pacs.resolver import Resolver


@pytest.fixture
def projects() -> ProjectRegistry:
    registry = ProjectRegistry()
    demo = registry.add("demo")
    demo.commands.add("hello", 'echo "Hello {{name}}"', ["greet"], cwd="/tmp")
    demo.commands.add("plain", "ls -la")
    demo.commands.add("pair", "echo {{name}} {{greeting}}", ["greet"])
    return registry


@pytest.fixture
def tracker(projects: ProjectRegistry) -> ActiveStateTracker:
    return ActiveStateTracker(projects)


@pytest.fixture
def resolver(projects: ProjectRegistry, tracker: ActiveStateTracker) -> Resolver:
    return Resolver(projects, tracker)


def _add_dev(projects: ProjectRegistry, tracker: ActiveStateTracker) -> None:
    demo = projects.require("demo")
    demo.environments.add("dev")
    demo.environments.set_values("dev", {"name": "World"})
    tracker.set_active_environment("demo", "dev")


class TestResolve:
    """Tests for Resolver.resolve."""

    def test_no_active_project_raises(self, resolver: Resolver) -> None:
        """Test resolution requires an active project."""
        with pytest.raises(NoActiveProjectError):
            resolver.resolve("hello")

    def test_no_environment_returns_raw_template(
        self, resolver: Resolver, tracker: ActiveStateTracker
    ) -> None:
        """Test the raw template is returned incomplete without an environment."""
        tracker.set_active_project("demo")
        resolved = resolver.resolve("hello")
        assert resolved.text == 'echo "Hello {{name}}"'
        assert resolved.complete is False
        assert resolved.used_environment is None
        assert resolved.missing == ("name",)
        assert resolved.cwd == "/tmp"

    def test_no_environment_without_placeholders_is_incomplete(
        self, resolver: Resolver, tracker: ActiveStateTracker
    ) -> None:
        """Test complete is False whenever no environment was applied."""
        tracker.set_active_project("demo")
        resolved = resolver.resolve("plain")
        assert resolved.text == "ls -la"
        assert resolved.complete is False
        assert resolved.missing == ()

    def test_active_environment_expands(
        self, resolver: Resolver, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test the active environment fills placeholders."""
        tracker.set_active_project("demo")
        _add_dev(projects, tracker)
        resolved = resolver.resolve("hello")
        assert resolved.text == 'echo "Hello World"'
        assert resolved.complete is True
        assert resolved.used_environment == "dev"
        assert resolved.project == "demo"

    def test_partial_expansion(
        self, resolver: Resolver, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test missing keys produce a partial, incomplete result."""
        tracker.set_active_project("demo")
        _add_dev(projects, tracker)
        resolved = resolver.resolve("pair")
        assert resolved.text == "echo World {{greeting}}"
        assert resolved.complete is False
        assert resolved.missing == ("greeting",)

    def test_override_wins_over_active(
        self, resolver: Resolver, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test an explicit environment is used instead of the active one."""
        tracker.set_active_project("demo")
        _add_dev(projects, tracker)
        demo = projects.require("demo")
        demo.environments.add("prod")
        demo.environments.set_values("prod", {"name": "Prod"})
        resolved = resolver.resolve("hello", "prod")
        assert resolved.text == 'echo "Hello Prod"'
        assert resolved.used_environment == "prod"
        assert tracker.get_active_environment("demo") == "dev"

    def test_unknown_override_raises_and_changes_nothing(
        self, resolver: Resolver, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test an unknown override fails without touching state."""
        tracker.set_active_project("demo")
        _add_dev(projects, tracker)
        with pytest.raises(EnvironmentNotFoundError):
            resolver.resolve("hello", "staging")
        assert tracker.get_active_environment("demo") == "dev"
        assert projects.require("demo").commands.require("hello").template == (
            'echo "Hello {{name}}"'
        )

    def test_unknown_command_raises(
        self, resolver: Resolver, tracker: ActiveStateTracker
    ) -> None:
        """Test unknown commands fail."""
        tracker.set_active_project("demo")
        with pytest.raises(CommandNotFoundError):
            resolver.resolve("nope")

    def test_explicit_project(self, resolver: Resolver, projects: ProjectRegistry) -> None:
        """Test resolving in a named project needs no active project."""
        other = projects.add("other")
        other.commands.add("hello", "echo other")
        resolved = resolver.resolve("hello", project="other")
        assert resolved.text == "echo other"
        assert resolved.project == "other"

    def test_explicit_unknown_project_raises(self, resolver: Resolver) -> None:
        """Test an unknown explicit project fails."""
        with pytest.raises(ProjectNotFoundError):
            resolver.resolve("hello", project="nope")

    def test_template_not_mutated(
        self, resolver: Resolver, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test resolving never changes the stored template."""
        tracker.set_active_project("demo")
        _add_dev(projects, tracker)
        resolver.resolve("hello")
        assert projects.require("demo").commands.require("hello").template == (
            'echo "Hello {{name}}"'
        )


class TestResolveAll:
    """Tests for Resolver.resolve_all."""

    def test_resolve_all_sorted_and_filtered(
        self, resolver: Resolver, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test every tagged command is resolved in name order."""
        tracker.set_active_project("demo")
        _add_dev(projects, tracker)
        results = resolver.resolve_all("greet")
        assert [r.name for r in results] == ["hello", "pair"]
        assert results[0].text == 'echo "Hello World"'

    def test_unknown_override_with_no_matches(
        self, resolver: Resolver, tracker: ActiveStateTracker
    ) -> None:
        """Test an unknown override fails even when the tag matches nothing."""
        tracker.set_active_project("demo")
        with pytest.raises(EnvironmentNotFoundError):
            resolver.resolve_all("no-such-tag", "staging")

    def test_unknown_override_in_empty_project(
        self, resolver: Resolver, projects: ProjectRegistry
    ) -> None:
        """Test an unknown override fails in a project without commands."""
        projects.add("empty")
        with pytest.raises(EnvironmentNotFoundError):
            resolver.resolve_all(env_override="staging", project="empty")
