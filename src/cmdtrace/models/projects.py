"""Project-level models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_PROJECT_COLOR = "#3B82F6"


class ProjectStats(BaseModel):
    """Rollup of the sessions recorded for one project path."""

    total_sessions: int = 0
    total_messages: int = 0
    first_session: datetime | None = None
    last_session: datetime | None = None
    average_messages_per_session: float = 0.0
    active_days: int = 0


class ProjectSummary(BaseModel):
    """Summary of a project for list views."""

    project_path: str
    project_name: str = ""
    stats: ProjectStats


class ProjectMetadata(BaseModel):
    """User-assigned state for one project path."""

    path: str
    custom_name: str | None = None
    description: str | None = None
    languages: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    color: str = DEFAULT_PROJECT_COLOR
    is_favorite: bool = False
    is_pinned: bool = False
    notes: str | None = None
    last_opened: datetime | None = None
    created_at: datetime | None = None

    @property
    def project_name(self) -> str:
        return self.path.rsplit("/", 1)[-1] or self.path

    @property
    def display_name(self) -> str:
        return self.custom_name or self.project_name
