"""Shared fixtures for CmdTrace tests."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from cmdtrace.config import Config
from cmdtrace.data.db import Database
from cmdtrace.data.overlay import MetadataOverlay
from cmdtrace.models.sessions import Session, SourceKind, SourceLocator

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

type SessionFactory = Callable[..., Session]


def _ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def write_jsonl(path: Path, records: list[Any]) -> Path:
    """Write records as JSON lines; plain strings are written verbatim."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def tmp_claude_dir(tmp_path: Path) -> Path:
    """A Claude data directory with two projects and a few edge-case files."""
    claude_dir = tmp_path / ".claude"
    demo = claude_dir / "projects" / "-tmp-demo-app"
    write_jsonl(
        demo / "sess-1.jsonl",
        [
            {"type": "summary", "summary": "Login fix"},
            {
                "type": "user",
                "sessionId": "sess-1",
                "cwd": "/tmp/demo-app",
                "timestamp": "2025-06-14T10:00:00Z",
                "message": {"role": "user", "content": "Fix the login bug"},
            },
            "not json at all",
            "[1, 2, 3]",
            {
                "type": "assistant",
                "sessionId": "sess-1",
                "timestamp": "2025-06-14T10:05:00Z",
                "message": {"role": "assistant", "content": [{"type": "text", "text": "Done"}]},
            },
        ],
    )
    write_jsonl(demo / "sess-empty.jsonl", [{"type": "summary", "summary": "nothing"}])
    write_jsonl(
        demo / "agent-123.jsonl",
        [{"type": "user", "sessionId": "agent", "message": {"content": "sidechain"}}],
    )

    other = claude_dir / "projects" / "-tmp-other"
    write_jsonl(
        other / "sess-2.jsonl",
        [
            {
                "type": "user",
                "sessionId": "sess-2",
                "timestamp": "2025-06-10T08:00:00Z",
                "message": {
                    "role": "user",
                    "content": [
                        {"type": "tool_result", "content": "ignored"},
                        {"type": "text", "text": "Add a retry"},
                    ],
                },
            },
            {"type": "assistant", "sessionId": "sess-2", "timestamp": "2025-06-10T08:01:00Z"},
            {"type": "user", "sessionId": "sess-2", "timestamp": "2025-06-10T08:02:00Z"},
        ],
    )
    return claude_dir


@pytest.fixture
def tmp_opencode_dir(tmp_path: Path) -> Path:
    """An OpenCode data directory with one real session and one empty one."""
    opencode_dir = tmp_path / "opencode"
    messages = opencode_dir / "storage" / "message"
    parts = opencode_dir / "storage" / "part"
    created = datetime(2025, 6, 12, 9, 0, tzinfo=UTC)

    write_json(
        messages / "ses_abc" / "msg_1.json",
        {
            "id": "msg_1",
            "role": "user",
            "path": {"cwd": "/tmp/oc-proj"},
            "time": {"created": _ms(created)},
        },
    )
    write_json(
        messages / "ses_abc" / "msg_2.json",
        {"id": "msg_2", "role": "assistant", "time": {"created": _ms(created) + 60_000}},
    )
    write_json(
        parts / "msg_1" / "prt_0.json",
        {"type": "text", "text": "<context>", "synthetic": True},
    )
    write_json(parts / "msg_1" / "prt_1.json", {"type": "text", "text": "Refactor the parser"})
    write_json(parts / "msg_1" / "prt_2.json", {"type": "tool", "text": "not text"})

    (messages / "ses_empty").mkdir(parents=True)
    (messages / "not-a-session").mkdir(parents=True)
    return opencode_dir


@pytest.fixture
def test_config(tmp_claude_dir: Path, tmp_opencode_dir: Path, tmp_path: Path) -> Config:
    """Config pointing at temporary test data."""
    return Config(
        claude_dir=tmp_claude_dir,
        opencode_dir=tmp_opencode_dir,
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def make_session() -> SessionFactory:
    """Build in-memory sessions for filter, sort and aggregate tests."""

    def factory(session_id: str, **overrides: Any) -> Session:
        fields: dict[str, Any] = {
            "id": session_id,
            "title": session_id,
            "project": "/work/app",
            "preview": "",
            "message_count": 3,
            "last_activity": FIXED_NOW,
            "source": SourceKind.CLAUDE,
            "locator": SourceLocator(directory="/tmp", file_name=f"{session_id}.jsonl"),
        }
        fields.update(overrides)
        return Session(**fields)

    return factory


@pytest.fixture
def overlay(fixed_clock: Callable[[], datetime]) -> MetadataOverlay:
    return MetadataOverlay(clock=fixed_clock)


@pytest.fixture
async def test_db(tmp_path: Path) -> AsyncGenerator[Database]:
    """A fresh on-disk test database."""
    db = Database(tmp_path / "test.db")
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)


@pytest.fixture
async def in_memory_db() -> AsyncGenerator[Database]:
    """SQLite in-memory database for fast unit tests."""
    db = Database(Path(":memory:"))
    await db.__aenter__()
    yield db  # type: ignore[misc]
    await db.__aexit__(None, None, None)
