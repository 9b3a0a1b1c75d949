"""Exception hierarchy for CmdTrace."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from cmdtrace.models.sessions import SourceKind


class CmdTraceError(Exception):
    """Base exception for all CmdTrace errors."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        if hint:
            self.add_note(hint)


class SourceAccessError(CmdTraceError):
    """A transcript root exists but cannot be read."""

    def __init__(self, kind: SourceKind, path: Path, reason: str) -> None:
        super().__init__(
            f"Cannot read {kind.value} sessions at {path}: {reason}",
            hint="Check the directory permissions.",
        )
        self.kind = kind
        self.path = path
        self.reason = reason


class TagHierarchyError(CmdTraceError):
    """A parent assignment would break single-level tag nesting."""


class TagConflictError(CmdTraceError):
    """A rename would collide with an existing tag."""
