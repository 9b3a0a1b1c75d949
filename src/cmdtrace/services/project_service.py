"""Project service: project rollups and per-project metadata."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from cmdtrace.data.project_overlay import ProjectOverlay
from cmdtrace.data.projects import (
    aggregate_projects,
    rank_projects,
    search_projects,
    sessions_for_project,
)
from cmdtrace.models.projects import ProjectMetadata, ProjectSummary

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import tzinfo

    from cmdtrace.data.repositories import MetadataRepository
    from cmdtrace.models.sessions import Session

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for project queries and project metadata edits.

    Edits are written through to the repository when one is configured.
    """

    def __init__(
        self,
        *,
        tz: tzinfo | None = None,
        overlay: ProjectOverlay | None = None,
        repository: MetadataRepository | None = None,
    ) -> None:
        self._tz = tz
        self._overlay = overlay if overlay is not None else ProjectOverlay()
        self._repository = repository

    @property
    def overlay(self) -> ProjectOverlay:
        return self._overlay

    async def list_projects(
        self, sessions: list[Session], search_text: str = ""
    ) -> Result[list[ProjectSummary], str]:
        """List projects: pinned, then favorites, then by last activity."""
        summaries = aggregate_projects(sessions, tz=self._tz)
        matched = search_projects(summaries, search_text, self._overlay)
        return Ok(rank_projects(matched, self._overlay))

    async def get_project(
        self, project_path: str, sessions: list[Session]
    ) -> Result[ProjectSummary, str]:
        """Get a single project by its path."""
        members = sessions_for_project(project_path, sessions)
        if not members:
            return Err(f"Project {project_path} not found")
        return Ok(aggregate_projects(members, tz=self._tz)[0])

    def project_metadata(self, project_path: str) -> ProjectMetadata:
        return self._overlay.metadata_for(project_path)

    async def toggle_favorite(self, project_path: str) -> Result[bool, str]:
        if not project_path:
            return Err("Project path must not be empty")
        value = self._overlay.toggle_favorite(project_path)
        await self._save()
        return Ok(value)

    async def toggle_pinned(self, project_path: str) -> Result[bool, str]:
        if not project_path:
            return Err("Project path must not be empty")
        value = self._overlay.toggle_pinned(project_path)
        await self._save()
        return Ok(value)

    async def set_languages(
        self, project_path: str, languages: Iterable[str]
    ) -> Result[ProjectMetadata, str]:
        if not project_path:
            return Err("Project path must not be empty")
        updated = self._overlay.set_languages(project_path, languages)
        await self._save()
        return Ok(updated)

    async def set_frameworks(
        self, project_path: str, frameworks: Iterable[str]
    ) -> Result[ProjectMetadata, str]:
        if not project_path:
            return Err("Project path must not be empty")
        updated = self._overlay.set_frameworks(project_path, frameworks)
        await self._save()
        return Ok(updated)

    async def set_custom_name(self, project_path: str, name: str) -> Result[ProjectMetadata, str]:
        if not project_path:
            return Err("Project path must not be empty")
        updated = self._overlay.set_custom_name(project_path, name)
        await self._save()
        return Ok(updated)

    async def update_project(self, meta: ProjectMetadata) -> Result[ProjectMetadata, str]:
        """Replace a project's metadata as a whole."""
        if not meta.path:
            return Err("Project path must not be empty")
        stored = self._overlay.update(meta)
        await self._save()
        return Ok(stored)

    async def _save(self) -> None:
        if self._repository is not None:
            await self._repository.save_projects(self._overlay.snapshot())
            logger.debug("Saved metadata for %d projects", len(self._overlay))
