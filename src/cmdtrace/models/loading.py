"""Load diagnostics models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class LoadReport:
    """Result summary for one source load."""

    sessions_loaded: int = 0
    files_excluded: int = 0
    files_failed: int = 0
    sessions_empty: int = 0
    failures: list[tuple[Path, str]] = field(default_factory=list)

    def record_excluded(self, path: Path) -> None:
        self.files_excluded += 1

    def record_failed(self, path: Path, reason: str) -> None:
        self.files_failed += 1
        self.failures.append((path, reason))

    def record_empty(self, path: Path) -> None:
        self.sessions_empty += 1

    def record_loaded(self, count: int) -> None:
        self.sessions_loaded += count
