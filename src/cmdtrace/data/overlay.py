"""User-assigned session state, keyed by session id."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cmdtrace.models.metadata import SessionMetadata

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from cmdtrace.data.parser import Clock
    from cmdtrace.models.sessions import Session

logger = logging.getLogger(__name__)


class MetadataOverlay:
    """Favorites, pins, archive state, custom names and tags per session.

    Entries are created lazily on the first mutation and never removed.
    Every mutation runs under one re-entrant lock. Readers get copies.
    """

    def __init__(
        self,
        entries: Mapping[str, SessionMetadata] | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.RLock()
        self._entries: dict[str, SessionMetadata] = {
            key: value.model_copy(deep=True) for key, value in (entries or {}).items()
        }

    # -- reads --

    def get(self, session_id: str) -> SessionMetadata | None:
        with self._lock:
            meta = self._entries.get(session_id)
            return meta.model_copy(deep=True) if meta is not None else None

    def snapshot(self) -> dict[str, SessionMetadata]:
        """Deep copy of every entry."""
        with self._lock:
            return {key: meta.model_copy(deep=True) for key, meta in self._entries.items()}

    def items(self) -> Iterator[tuple[str, SessionMetadata]]:
        return iter(self.snapshot().items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._entries

    def is_favorite(self, session_id: str) -> bool:
        with self._lock:
            meta = self._entries.get(session_id)
            return meta is not None and meta.is_favorite

    def is_pinned(self, session_id: str) -> bool:
        with self._lock:
            meta = self._entries.get(session_id)
            return meta is not None and meta.is_pinned

    def is_archived(self, session_id: str) -> bool:
        with self._lock:
            meta = self._entries.get(session_id)
            return meta is not None and meta.is_archived

    def custom_name(self, session_id: str) -> str | None:
        with self._lock:
            meta = self._entries.get(session_id)
            return meta.custom_name if meta is not None else None

    def tags_for(self, session_id: str) -> list[str]:
        with self._lock:
            meta = self._entries.get(session_id)
            return list(meta.tags) if meta is not None else []

    def display_name(self, session: Session) -> str:
        """Custom name if one is set, else the session's display title."""
        return self.custom_name(session.id) or session.display_title

    # -- single-session mutations --

    def toggle_favorite(self, session_id: str) -> bool:
        """Flip the favorite flag and return the new value."""
        with self._lock:
            meta = self._entry(session_id)
            meta.is_favorite = not meta.is_favorite
            return meta.is_favorite

    def toggle_pinned(self, session_id: str) -> bool:
        with self._lock:
            meta = self._entry(session_id)
            meta.is_pinned = not meta.is_pinned
            return meta.is_pinned

    def toggle_archive(self, session_id: str) -> bool:
        """Flip the archive flag. ``archived_at`` is set only while archived."""
        with self._lock:
            meta = self._entry(session_id)
            meta.is_archived = not meta.is_archived
            meta.archived_at = self._clock() if meta.is_archived else None
            return meta.is_archived

    def set_custom_name(self, session_id: str, name: str) -> None:
        """Set the display name override. An empty name clears it."""
        with self._lock:
            self._entry(session_id).custom_name = name or None

    def add_tag(self, session_id: str, tag: str) -> bool:
        """Attach ``tag``. Returns False when it was already present."""
        with self._lock:
            meta = self._entry(session_id)
            if tag in meta.tags:
                return False
            meta.tags.append(tag)
            return True

    def remove_tag(self, session_id: str, tag: str) -> bool:
        with self._lock:
            meta = self._entry(session_id)
            if tag not in meta.tags:
                return False
            meta.tags = [t for t in meta.tags if t != tag]
            return True

    # -- bulk mutations --

    def archive_older_than(self, sessions: Iterable[Session], days: int) -> int:
        """Archive sessions idle for more than ``days``. Returns how many changed."""
        with self._lock:
            now = self._clock()
            cutoff = now - timedelta(days=days)
            archived = 0
            for session in sessions:
                if session.last_activity >= cutoff:
                    continue
                meta = self._entry(session.id)
                if meta.is_archived:
                    continue
                meta.is_archived = True
                meta.archived_at = now
                archived += 1
        if archived:
            logger.info("Archived %d sessions older than %d days", archived, days)
        return archived

    def bulk_add_tag(self, session_ids: Iterable[str], tag: str) -> int:
        with self._lock:
            return sum(1 for session_id in session_ids if self.add_tag(session_id, tag))

    def bulk_remove_tag(self, session_ids: Iterable[str], tag: str) -> int:
        with self._lock:
            return sum(1 for session_id in session_ids if self.remove_tag(session_id, tag))

    def bulk_archive(self, session_ids: Iterable[str]) -> int:
        with self._lock:
            now = self._clock()
            changed = 0
            for session_id in session_ids:
                meta = self._entry(session_id)
                if not meta.is_archived:
                    meta.is_archived = True
                    meta.archived_at = now
                    changed += 1
            return changed

    def bulk_unarchive(self, session_ids: Iterable[str]) -> int:
        with self._lock:
            changed = 0
            for session_id in session_ids:
                meta = self._entry(session_id)
                if meta.is_archived:
                    changed += 1
                meta.is_archived = False
                meta.archived_at = None
            return changed

    def bulk_toggle_favorite(self, session_ids: Iterable[str]) -> None:
        with self._lock:
            for session_id in session_ids:
                self.toggle_favorite(session_id)

    def replace_tag(self, old: str, new: str) -> int:
        """Rename ``old`` to ``new`` in place on every session, keeping tags unique."""
        with self._lock:
            touched = 0
            for meta in self._entries.values():
                if old not in meta.tags:
                    continue
                renamed: list[str] = []
                for tag in meta.tags:
                    tag = new if tag == old else tag
                    if tag not in renamed:
                        renamed.append(tag)
                meta.tags = renamed
                touched += 1
            return touched

    def strip_tag(self, tag: str) -> int:
        """Remove ``tag`` from every session."""
        with self._lock:
            touched = 0
            for meta in self._entries.values():
                if tag in meta.tags:
                    meta.tags = [t for t in meta.tags if t != tag]
                    touched += 1
            return touched

    def _entry(self, session_id: str) -> SessionMetadata:
        meta = self._entries.get(session_id)
        if meta is None:
            meta = SessionMetadata()
            self._entries[session_id] = meta
        return meta
