"""Protocol definitions for services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime

    from result import Result

    from cmdtrace.data.overlay import MetadataOverlay
    from cmdtrace.models.metadata import TagInfo, TagSortMode
    from cmdtrace.models.projects import ProjectMetadata, ProjectSummary
    from cmdtrace.models.query import FilterResult, SessionQuery
    from cmdtrace.models.sessions import Session, SourceKind


class SessionServiceProtocol(Protocol):
    """Interface for session loading and filtering."""

    @property
    def active_source(self) -> SourceKind: ...

    async def reload(self, kind: SourceKind | None = None) -> Result[list[Session], str]: ...

    async def switch_source(self, kind: SourceKind) -> list[Session] | None: ...

    async def wait_for_source(self, kind: SourceKind) -> Result[list[Session], str]: ...

    def filter(
        self,
        query: SessionQuery,
        overlay: MetadataOverlay,
        *,
        now: datetime | None = None,
    ) -> FilterResult: ...


class TagServiceProtocol(Protocol):
    """Interface for tag operations."""

    async def list_tags(
        self, sort_mode: TagSortMode | None = None
    ) -> Result[list[TagInfo], str]: ...

    async def root_tags(
        self, sort_mode: TagSortMode | None = None
    ) -> Result[list[TagInfo], str]: ...

    async def child_tags(
        self, parent: str, sort_mode: TagSortMode | None = None
    ) -> Result[list[TagInfo], str]: ...

    def usage_count(self, name: str) -> int: ...


class ProjectServiceProtocol(Protocol):
    """Interface for project operations."""

    async def list_projects(
        self, sessions: list[Session], search_text: str = ""
    ) -> Result[list[ProjectSummary], str]: ...

    async def get_project(
        self, project_path: str, sessions: list[Session]
    ) -> Result[ProjectSummary, str]: ...

    def project_metadata(self, project_path: str) -> ProjectMetadata: ...

    async def toggle_favorite(self, project_path: str) -> Result[bool, str]: ...

    async def toggle_pinned(self, project_path: str) -> Result[bool, str]: ...

    async def set_languages(
        self, project_path: str, languages: list[str]
    ) -> Result[ProjectMetadata, str]: ...

    async def set_frameworks(
        self, project_path: str, frameworks: list[str]
    ) -> Result[ProjectMetadata, str]: ...

    async def set_custom_name(
        self, project_path: str, name: str
    ) -> Result[ProjectMetadata, str]: ...
