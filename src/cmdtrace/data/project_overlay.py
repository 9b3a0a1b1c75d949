"""User-assigned project state, keyed by project path."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cmdtrace.models.projects import ProjectMetadata

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from cmdtrace.data.parser import Clock

logger = logging.getLogger(__name__)


class ProjectOverlay:
    """Favorites, pins, names, languages and frameworks per project path.

    Works like ``MetadataOverlay``: entries are created on first mutation,
    all mutations share one re-entrant lock and readers get copies.
    """

    def __init__(
        self,
        entries: Mapping[str, ProjectMetadata] | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.RLock()
        self._entries: dict[str, ProjectMetadata] = {
            path: meta.model_copy(deep=True) for path, meta in (entries or {}).items()
        }

    def get(self, path: str) -> ProjectMetadata | None:
        with self._lock:
            meta = self._entries.get(path)
            return meta.model_copy(deep=True) if meta is not None else None

    def metadata_for(self, path: str) -> ProjectMetadata:
        """Stored metadata for ``path``, or unsaved defaults."""
        return self.get(path) or ProjectMetadata(path=path)

    def snapshot(self) -> dict[str, ProjectMetadata]:
        with self._lock:
            return {path: meta.model_copy(deep=True) for path, meta in self._entries.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def is_favorite(self, path: str) -> bool:
        with self._lock:
            meta = self._entries.get(path)
            return meta is not None and meta.is_favorite

    def is_pinned(self, path: str) -> bool:
        with self._lock:
            meta = self._entries.get(path)
            return meta is not None and meta.is_pinned

    def toggle_favorite(self, path: str) -> bool:
        """Flip the favorite flag and return the new value."""
        with self._lock:
            meta = self._entry(path)
            meta.is_favorite = not meta.is_favorite
            return meta.is_favorite

    def toggle_pinned(self, path: str) -> bool:
        with self._lock:
            meta = self._entry(path)
            meta.is_pinned = not meta.is_pinned
            return meta.is_pinned

    def set_languages(self, path: str, languages: Iterable[str]) -> ProjectMetadata:
        """Replace the language list. Names are trimmed and blanks dropped."""
        with self._lock:
            meta = self._entry(path)
            meta.languages = _clean_names(languages)
            return meta.model_copy(deep=True)

    def set_frameworks(self, path: str, frameworks: Iterable[str]) -> ProjectMetadata:
        with self._lock:
            meta = self._entry(path)
            meta.frameworks = _clean_names(frameworks)
            return meta.model_copy(deep=True)

    def set_custom_name(self, path: str, name: str) -> ProjectMetadata:
        """Set the display name override. An empty name clears it."""
        with self._lock:
            meta = self._entry(path)
            meta.custom_name = name.strip() or None
            return meta.model_copy(deep=True)

    def update(self, meta: ProjectMetadata) -> ProjectMetadata:
        """Store ``meta`` as a whole, keeping the original creation time."""
        with self._lock:
            existing = self._entries.get(meta.path)
            created_at = existing.created_at if existing is not None else None
            stored = meta.model_copy(
                deep=True, update={"created_at": created_at or meta.created_at or self._clock()}
            )
            self._entries[meta.path] = stored
            return stored.model_copy(deep=True)

    def _entry(self, path: str) -> ProjectMetadata:
        meta = self._entries.get(path)
        if meta is None:
            meta = ProjectMetadata(path=path, created_at=self._clock())
            self._entries[path] = meta
            logger.debug("Created metadata for project %s", path)
        return meta


def _clean_names(names: Iterable[str]) -> list[str]:
    return [stripped for name in names if (stripped := name.strip())]
