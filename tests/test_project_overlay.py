"""Tests for per-project metadata."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import pytest

from cmdtrace.data.project_overlay import ProjectOverlay
from cmdtrace.models.projects import DEFAULT_PROJECT_COLOR, ProjectMetadata


@pytest.fixture
def projects(fixed_clock: Callable[[], datetime]) -> ProjectOverlay:
    return ProjectOverlay(clock=fixed_clock)


class TestProjectMetadataModel:
    def test_defaults_and_names(self) -> None:
        meta = ProjectMetadata(path="/src/app")
        assert meta.color == DEFAULT_PROJECT_COLOR
        assert meta.project_name == "app"
        assert meta.display_name == "app"
        assert ProjectMetadata(path="/src/app", custom_name="App").display_name == "App"


class TestProjectOverlay:
    def test_unknown_path_reads_defaults_without_storing(self, projects: ProjectOverlay) -> None:
        meta = projects.metadata_for("/p")
        assert meta.path == "/p"
        assert not meta.is_pinned
        assert "/p" not in projects

    def test_toggles_create_entry_once(
        self, projects: ProjectOverlay, fixed_clock: Callable[[], datetime]
    ) -> None:
        assert projects.toggle_favorite("/p")
        assert projects.toggle_pinned("/p")
        assert not projects.toggle_favorite("/p")
        assert projects.is_pinned("/p")
        assert not projects.is_favorite("/p")
        stored = projects.get("/p")
        assert stored is not None
        assert stored.created_at == fixed_clock()
        assert len(projects) == 1

    def test_toggles_keep_other_fields(self, projects: ProjectOverlay) -> None:
        projects.set_languages("/p", ["Swift"])
        projects.set_custom_name("/p", "Mac app")
        projects.toggle_pinned("/p")
        meta = projects.metadata_for("/p")
        assert meta.languages == ["Swift"]
        assert meta.display_name == "Mac app"

    def test_language_and_framework_lists_are_cleaned(self, projects: ProjectOverlay) -> None:
        assert projects.set_languages("/p", [" python ", "", "go"]).languages == ["python", "go"]
        assert projects.set_frameworks("/p", ["django", "  "]).frameworks == ["django"]

    def test_empty_custom_name_clears(self, projects: ProjectOverlay) -> None:
        projects.set_custom_name("/p", "Name")
        assert projects.set_custom_name("/p", "  ").custom_name is None

    def test_update_keeps_creation_time(
        self, projects: ProjectOverlay, fixed_clock: Callable[[], datetime]
    ) -> None:
        projects.toggle_favorite("/p")
        stored = projects.update(ProjectMetadata(path="/p", notes="hello"))
        assert stored.notes == "hello"
        assert stored.created_at == fixed_clock()
        assert not stored.is_favorite

    def test_readers_get_copies(self, projects: ProjectOverlay) -> None:
        projects.set_languages("/p", ["rust"])
        copy = projects.get("/p")
        assert copy is not None
        copy.languages.append("c")
        assert projects.metadata_for("/p").languages == ["rust"]
        assert projects.snapshot()["/p"].languages == ["rust"]
