"""Deterministic session ordering: pinned first, then most recent."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from cmdtrace.data.overlay import MetadataOverlay
    from cmdtrace.models.sessions import Session


def sort_sessions(sessions: Iterable[Session], overlay: MetadataOverlay) -> list[Session]:
    """Return ``sessions`` with pinned ones first, each group newest first.

    The sort is stable, so sessions with equal pin state and activity time
    keep their input order.
    """
    return rank_sessions(sessions, overlay.is_pinned)


def rank_sessions(
    sessions: Iterable[Session], is_pinned: Callable[[str], bool]
) -> list[Session]:
    """Order ``sessions`` using ``is_pinned`` to look up each id's pin state."""
    return sorted(sessions, key=lambda s: (not is_pinned(s.id), -s.last_activity.timestamp()))
