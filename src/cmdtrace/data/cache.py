"""In-memory cache of the last loaded session list per source."""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cmdtrace.data.parser import Clock
    from cmdtrace.models.sessions import Session, SourceKind

logger = logging.getLogger(__name__)


class SessionCache:
    """Holds at most one session list per ``SourceKind``. No eviction."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._entries: dict[SourceKind, tuple[list[Session], datetime]] = {}

    def get(self, kind: SourceKind) -> list[Session] | None:
        """Return the cached list for ``kind``, or ``None`` on a miss."""
        with self._lock:
            entry = self._entries.get(kind)
        if entry is None:
            return None
        return list(entry[0])

    def put(self, kind: SourceKind, sessions: list[Session]) -> None:
        """Replace the cached list for ``kind``."""
        loaded_at = self._clock()
        with self._lock:
            self._entries[kind] = (list(sessions), loaded_at)
        logger.debug("Cached %d %s sessions", len(sessions), kind.value)

    def loaded_at(self, kind: SourceKind) -> datetime | None:
        with self._lock:
            entry = self._entries.get(kind)
        return entry[1] if entry is not None else None

    def kinds(self) -> list[SourceKind]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, kind: object) -> bool:
        with self._lock:
            return kind in self._entries
