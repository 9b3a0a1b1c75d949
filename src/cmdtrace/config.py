"""Configuration for CmdTrace."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cmdtrace.models.sessions import SourceKind


@dataclass(frozen=True)
class Config:
    """Application configuration."""

    claude_dir: Path = field(default_factory=lambda: Path.home() / ".claude")
    opencode_dir: Path = field(
        default_factory=lambda: Path.home() / ".local" / "share" / "opencode"
    )
    data_dir: Path = field(default_factory=lambda: Path.home() / ".cache" / "cmdtrace")
    excluded_prefixes: tuple[str, ...] = ("agent-",)
    preview_length: int = 200

    @property
    def claude_projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @property
    def opencode_message_dir(self) -> Path:
        return self.opencode_dir / "storage" / "message"

    @property
    def opencode_part_dir(self) -> Path:
        return self.opencode_dir / "storage" / "part"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "metadata.db"

    def root_for(self, kind: SourceKind) -> Path:
        """Return the directory scanned for sessions of ``kind``."""
        match kind:
            case SourceKind.OPENCODE:
                return self.opencode_message_dir
            case _:
                return self.claude_projects_dir
