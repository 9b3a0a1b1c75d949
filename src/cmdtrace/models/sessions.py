"""Session-level models."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class SourceKind(StrEnum):
    """CLI tools whose transcripts can be loaded."""

    CLAUDE = "claude"
    OPENCODE = "opencode"


class SourceLocator(BaseModel):
    """Where a session's raw transcript lives on disk."""

    model_config = ConfigDict(frozen=True)

    directory: str
    file_name: str


class Session(BaseModel):
    """Normalized, read-only view of one transcript."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    project: str = ""
    preview: str = ""
    message_count: int = 0
    last_activity: datetime
    first_timestamp: datetime | None = None
    source: SourceKind = SourceKind.CLAUDE
    locator: SourceLocator

    @property
    def project_name(self) -> str:
        """Last component of the project path."""
        parts = self.project.rstrip("/").split("/")
        return parts[-1] if parts[-1] else self.project

    @property
    def display_title(self) -> str:
        if self.preview:
            return self.preview[:50]
        return self.title

    @property
    def resume_id(self) -> str:
        """Identifier the CLI accepts to resume this session."""
        stem = self.locator.file_name.removesuffix(".jsonl")
        if stem:
            return stem
        return self.id.rsplit("/", 1)[-1]

    @property
    def duration(self) -> timedelta | None:
        if self.first_timestamp is None:
            return None
        return self.last_activity - self.first_timestamp
