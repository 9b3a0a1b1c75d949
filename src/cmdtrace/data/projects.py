"""Project rollups computed from a loaded session list."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from cmdtrace.models.projects import ProjectStats, ProjectSummary

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import tzinfo

    from cmdtrace.data.project_overlay import ProjectOverlay
    from cmdtrace.models.sessions import Session


def all_projects(sessions: Iterable[Session]) -> list[str]:
    """Sorted unique project paths."""
    return sorted({s.project for s in sessions})


def sessions_for_project(project_path: str, sessions: Iterable[Session]) -> list[Session]:
    return [s for s in sessions if s.project == project_path]


def project_stats(
    project_path: str, sessions: Iterable[Session], *, tz: tzinfo | None = None
) -> ProjectStats:
    return _stats(sessions_for_project(project_path, sessions), tz)


def aggregate_projects(
    sessions: Iterable[Session], *, tz: tzinfo | None = None
) -> list[ProjectSummary]:
    """Group sessions by exact project path, most recently active first.

    ``tz`` is the timezone used to count active calendar days. The system
    local timezone is used when omitted.
    """
    groups: dict[str, list[Session]] = defaultdict(list)
    for session in sessions:
        groups[session.project].append(session)

    summaries = [
        ProjectSummary(
            project_path=path,
            project_name=members[0].project_name,
            stats=_stats(members, tz),
        )
        for path, members in groups.items()
    ]
    summaries.sort(key=_last_session_key, reverse=True)
    return summaries


def rank_projects(
    summaries: Iterable[ProjectSummary], overlay: ProjectOverlay
) -> list[ProjectSummary]:
    """Pinned projects first, then favorites, then most recently active."""
    return sorted(
        summaries,
        key=lambda p: (
            not overlay.is_pinned(p.project_path),
            not overlay.is_favorite(p.project_path),
            -_last_session_key(p),
        ),
    )


def search_projects(
    summaries: Iterable[ProjectSummary], text: str, overlay: ProjectOverlay
) -> list[ProjectSummary]:
    """Keep projects whose display name, path, languages or frameworks contain ``text``.

    Matching is case-insensitive. Blank text keeps everything.
    """
    needle = text.strip().lower()
    if not needle:
        return list(summaries)
    matched: list[ProjectSummary] = []
    for summary in summaries:
        meta = overlay.metadata_for(summary.project_path)
        haystacks = (
            meta.display_name,
            summary.project_path,
            " ".join(meta.languages),
            " ".join(meta.frameworks),
        )
        if any(needle in haystack.lower() for haystack in haystacks):
            matched.append(summary)
    return matched


def _last_session_key(summary: ProjectSummary) -> float:
    last = summary.stats.last_session
    return last.timestamp() if last is not None else 0.0


def _stats(sessions: list[Session], tz: tzinfo | None) -> ProjectStats:
    if not sessions:
        return ProjectStats()
    total_messages = sum(s.message_count for s in sessions)
    return ProjectStats(
        total_sessions=len(sessions),
        total_messages=total_messages,
        first_session=min(s.first_timestamp or s.last_activity for s in sessions),
        last_session=max(s.last_activity for s in sessions),
        average_messages_per_session=total_messages / len(sessions),
        active_days=len({s.last_activity.astimezone(tz).date() for s in sessions}),
    )
