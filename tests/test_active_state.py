"""Tests for pacs.active_state module."""

from __future__ import annotations

import pytest

from pacs.active_state import ActiveState, ActiveStateTracker
from pacs.errors import EnvironmentNotFoundError, PersistenceError, ProjectNotFoundError
from pacs.registry import ProjectRegistry


@pytest.fixture
def projects() -> ProjectRegistry:
    """Registry with project 'demo' (environments dev, prod) and 'other'."""
    registry = ProjectRegistry()
    demo = registry.add("demo")
    demo.environments.add("dev")
    demo.environments.add("prod")
    registry.add("other")
    return registry


@pytest.fixture
def saved() -> list[ActiveState]:
    return []


@pytest.fixture
def tracker(projects: ProjectRegistry, saved: list[ActiveState]) -> ActiveStateTracker:
    return ActiveStateTracker(projects, save=saved.append)


class TestActiveProject:
    """Tests for the active project pointer."""

    def test_initially_none(self, tracker: ActiveStateTracker) -> None:
        """Test there is no active project by default."""
        assert tracker.get_active_project() is None

    def test_set_and_get(self, tracker: ActiveStateTracker, saved: list[ActiveState]) -> None:
        """Test setting the active project persists immediately."""
        tracker.set_active_project("demo")
        assert tracker.get_active_project() == "demo"
        assert saved[-1].active_project == "demo"

    def test_set_unknown_raises(self, tracker: ActiveStateTracker, saved: list[ActiveState]) -> None:
        """Test unknown projects are rejected without saving."""
        with pytest.raises(ProjectNotFoundError):
            tracker.set_active_project("nope")
        assert tracker.get_active_project() is None
        assert saved == []

    def test_clear(self, tracker: ActiveStateTracker) -> None:
        """Test clearing the active project."""
        tracker.set_active_project("demo")
        tracker.clear_active_project()
        assert tracker.get_active_project() is None

    def test_project_removal_clears_pointers(
        self, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test removing the active project clears it and its environment."""
        tracker.set_active_project("demo")
        tracker.set_active_environment("demo", "dev")
        projects.remove("demo")
        assert tracker.get_active_project() is None
        assert tracker.get_active_environment("demo") is None

    def test_other_project_removal_keeps_pointer(
        self, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test removing a different project leaves the active one alone."""
        tracker.set_active_project("demo")
        projects.remove("other")
        assert tracker.get_active_project() == "demo"


class TestActiveEnvironment:
    """Tests for per-project active environments."""

    def test_set_and_get(self, tracker: ActiveStateTracker, saved: list[ActiveState]) -> None:
        """Test setting an environment persists immediately."""
        tracker.set_active_environment("demo", "dev")
        assert tracker.get_active_environment("demo") == "dev"
        assert saved[-1].environments == {"demo": "dev"}

    def test_unknown_environment_raises(self, tracker: ActiveStateTracker) -> None:
        """Test unknown environments are rejected."""
        with pytest.raises(EnvironmentNotFoundError):
            tracker.set_active_environment("demo", "staging")
        assert tracker.get_active_environment("demo") is None

    def test_unknown_project_raises(self, tracker: ActiveStateTracker) -> None:
        """Test environments of unknown projects are rejected."""
        with pytest.raises(ProjectNotFoundError):
            tracker.set_active_environment("nope", "dev")

    def test_environment_is_per_project(self, tracker: ActiveStateTracker) -> None:
        """Test each project keeps its own pointer."""
        tracker.set_active_environment("demo", "prod")
        assert tracker.get_active_environment("other") is None

    def test_clear(self, tracker: ActiveStateTracker) -> None:
        """Test clearing the active environment."""
        tracker.set_active_environment("demo", "dev")
        tracker.clear_active_environment("demo")
        assert tracker.get_active_environment("demo") is None

    def test_removing_active_environment_clears_pointer(
        self, projects: ProjectRegistry, tracker: ActiveStateTracker, saved: list[ActiveState]
    ) -> None:
        """Test removing the active environment clears the pointer and saves."""
        tracker.set_active_environment("demo", "dev")
        projects.require("demo").environments.remove("dev")
        assert tracker.get_active_environment("demo") is None
        assert saved[-1].environments == {}

    def test_removing_inactive_environment_keeps_pointer(
        self, projects: ProjectRegistry, tracker: ActiveStateTracker
    ) -> None:
        """Test removing another environment leaves the pointer alone."""
        tracker.set_active_environment("demo", "dev")
        projects.require("demo").environments.remove("prod")
        assert tracker.get_active_environment("demo") == "dev"


class TestLoadedState:
    """Tests for state passed in at construction."""

    def test_valid_state_kept(self, projects: ProjectRegistry, saved: list[ActiveState]) -> None:
        """Test valid pointers survive and nothing is rewritten."""
        state = ActiveState("demo", {"demo": "dev"})
        tracker = ActiveStateTracker(projects, state, save=saved.append)
        assert tracker.get_active_project() == "demo"
        assert tracker.get_active_environment("demo") == "dev"
        assert saved == []

    def test_dangling_pointers_pruned(
        self, projects: ProjectRegistry, saved: list[ActiveState]
    ) -> None:
        """Test pointers to missing entities are dropped and saved."""
        state = ActiveState("gone", {"demo": "staging", "gone": "dev", "other": "x"})
        tracker = ActiveStateTracker(projects, state, save=saved.append)
        assert tracker.get_active_project() is None
        assert tracker.state.environments == {}
        assert saved == [ActiveState(None, {})]

    def test_state_returns_copy(self, tracker: ActiveStateTracker) -> None:
        """Test mutating the returned state does not affect the tracker."""
        tracker.set_active_environment("demo", "dev")
        snapshot = tracker.state
        snapshot.environments["demo"] = "prod"
        assert tracker.get_active_environment("demo") == "dev"


class TestFailedSave:
    """Tests that a failed save leaves the pointers unchanged."""

    @pytest.fixture
    def failing(self, projects: ProjectRegistry) -> ActiveStateTracker:
        """Tracker with 'demo'/'dev' active whose next save raises."""
        tracker = ActiveStateTracker(projects, ActiveState("demo", {"demo": "dev"}))

        def fail(state: ActiveState) -> None:
            raise PersistenceError("disk full")

        tracker._save = fail
        return tracker

    def test_set_active_project(self, failing: ActiveStateTracker) -> None:
        """Test switching project keeps the old pointer when saving fails."""
        with pytest.raises(PersistenceError):
            failing.set_active_project("other")
        assert failing.get_active_project() == "demo"

    def test_clear_active_project(self, failing: ActiveStateTracker) -> None:
        """Test clearing the project keeps the old pointer when saving fails."""
        with pytest.raises(PersistenceError):
            failing.clear_active_project()
        assert failing.get_active_project() == "demo"

    def test_set_active_environment(self, failing: ActiveStateTracker) -> None:
        """Test switching environment keeps the old pointer when saving fails."""
        with pytest.raises(PersistenceError):
            failing.set_active_environment("demo", "prod")
        assert failing.get_active_environment("demo") == "dev"

    def test_clear_active_environment(self, failing: ActiveStateTracker) -> None:
        """Test clearing the environment keeps the old pointer when saving fails."""
        with pytest.raises(PersistenceError):
            failing.clear_active_environment("demo")
        assert failing.get_active_environment("demo") == "dev"
