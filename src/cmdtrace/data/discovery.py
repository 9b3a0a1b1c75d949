"""Discover and load Claude Code / OpenCode sessions from disk."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cmdtrace.data.parser import parse_claude_session, parse_opencode_session
from cmdtrace.errors import SourceAccessError
from cmdtrace.models.sessions import SourceKind

if TYPE_CHECKING:
    from pathlib import Path

    from cmdtrace.config import Config
    from cmdtrace.data.parser import Clock
    from cmdtrace.data.protocols import LoadDiagnostics
    from cmdtrace.models.sessions import Session

logger = logging.getLogger(__name__)

_OPENCODE_SESSION_PREFIX = "ses_"


class _NullDiagnostics:
    def record_excluded(self, path: Path) -> None:
        pass

    def record_failed(self, path: Path, reason: str) -> None:
        pass

    def record_empty(self, path: Path) -> None:
        pass

    def record_loaded(self, count: int) -> None:
        pass


def load_sessions(
    config: Config,
    kind: SourceKind,
    *,
    diagnostics: LoadDiagnostics | None = None,
    clock: Clock | None = None,
) -> list[Session]:
    """Load every non-empty session of one source, newest first.

    Unreadable files are skipped and reported to ``diagnostics``. Raises
    ``SourceAccessError`` only when the source root exists but cannot be listed.
    """
    sink = diagnostics if diagnostics is not None else _NullDiagnostics()
    match kind:
        case SourceKind.OPENCODE:
            parsed = _load_opencode_sessions(config, sink, clock)
        case _:
            parsed = _load_claude_sessions(config, sink, clock)

    sessions: list[Session] = []
    for path, session in parsed:
        if session.message_count == 0:
            sink.record_empty(path)
            continue
        sessions.append(session)

    sessions.sort(key=lambda s: s.last_activity, reverse=True)
    sink.record_loaded(len(sessions))
    logger.info("Loaded %d %s sessions", len(sessions), kind.value)
    return sessions


def _load_claude_sessions(
    config: Config, sink: LoadDiagnostics, clock: Clock | None
) -> list[tuple[Path, Session]]:
    projects_dir = config.claude_projects_dir
    project_dirs = _list_root(SourceKind.CLAUDE, projects_dir)
    if project_dirs is None:
        return []

    parsed: list[tuple[Path, Session]] = []
    for entry in project_dirs:
        if not entry.is_dir():
            continue
        try:
            log_paths = sorted(entry.glob("*.jsonl"))
        except OSError as exc:
            _record_failure(sink, entry, exc)
            continue

        for jsonl_path in log_paths:
            if jsonl_path.name.startswith(config.excluded_prefixes):
                sink.record_excluded(jsonl_path)
                continue
            try:
                session = parse_claude_session(
                    jsonl_path, preview_length=config.preview_length, clock=clock
                )
            except (OSError, ValueError) as exc:
                _record_failure(sink, jsonl_path, exc)
                continue
            parsed.append((jsonl_path, session))

    return parsed


def _load_opencode_sessions(
    config: Config, sink: LoadDiagnostics, clock: Clock | None
) -> list[tuple[Path, Session]]:
    message_dir = config.opencode_message_dir
    session_dirs = _list_root(SourceKind.OPENCODE, message_dir)
    if session_dirs is None:
        return []

    parsed: list[tuple[Path, Session]] = []
    for entry in session_dirs:
        if not entry.name.startswith(_OPENCODE_SESSION_PREFIX) or not entry.is_dir():
            continue
        try:
            session = parse_opencode_session(
                entry,
                config.opencode_part_dir,
                preview_length=config.preview_length,
                clock=clock,
            )
        except (OSError, ValueError) as exc:
            _record_failure(sink, entry, exc)
            continue
        parsed.append((entry, session))

    return parsed


def _list_root(kind: SourceKind, root: Path) -> list[Path] | None:
    if not root.is_dir():
        logger.info("%s sessions directory not found: %s", kind.value, root)
        return None
    try:
        return sorted(root.iterdir())
    except OSError as exc:
        logger.warning("Cannot list %s sessions directory %s: %s", kind.value, root, exc)
        raise SourceAccessError(kind, root, str(exc)) from exc


def _record_failure(sink: LoadDiagnostics, path: Path, exc: Exception) -> None:
    logger.debug("Skipping unreadable session %s: %s", path, exc)
    sink.record_failed(path, str(exc))
