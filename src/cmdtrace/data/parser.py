"""Source-aware transcript parser for Claude Code and OpenCode sessions."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from cmdtrace.data.records import ClaudeLogRecord, OpenCodeMessageRecord, OpenCodePartRecord
from cmdtrace.models.sessions import Session, SourceKind, SourceLocator

logger = logging.getLogger(__name__)

type Clock = Callable[[], datetime]

PREVIEW_LENGTH = 200


def parse_claude_session(
    path: Path,
    *,
    preview_length: int = PREVIEW_LENGTH,
    clock: Clock | None = None,
) -> Session:
    """Stream-parse one Claude Code ``.jsonl`` log into a ``Session``.

    Malformed lines are skipped. Raises ``OSError`` or ``UnicodeDecodeError``
    when the file itself cannot be read.
    """
    project_folder = path.parent.name
    session_id = ""
    cwd = ""
    preview = ""
    message_count = 0
    timestamps: list[datetime] = []

    with open(path, encoding="utf-8") as file:
        for line_num, line in enumerate(file, 1):
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Invalid JSON at %s:%d", path, line_num)
                continue
            if not isinstance(raw, dict):
                continue

            record = ClaudeLogRecord.model_validate(raw)
            if not session_id and record.session_id:
                session_id = record.session_id
            if not cwd and record.cwd:
                cwd = record.cwd
            if (parsed := _parse_iso_timestamp(record.timestamp)) is not None:
                timestamps.append(parsed)
            if not preview:
                preview = record.user_text()[:preview_length]
            if record.is_conversation:
                message_count += 1

    session_id = session_id or path.stem
    return Session(
        id=f"{project_folder}/{session_id}",
        title=preview or session_id,
        project=cwd or _decode_project_folder(project_folder),
        preview=preview,
        message_count=message_count,
        last_activity=max(timestamps) if timestamps else _now(clock),
        first_timestamp=min(timestamps) if timestamps else None,
        source=SourceKind.CLAUDE,
        locator=SourceLocator(directory=str(path.parent), file_name=path.name),
    )


def parse_opencode_session(
    session_dir: Path,
    part_root: Path,
    *,
    preview_length: int = PREVIEW_LENGTH,
    clock: Clock | None = None,
) -> Session:
    """Parse one OpenCode session directory into a ``Session``.

    Unreadable or malformed message files are skipped. Raises ``OSError`` when
    the session directory cannot be listed.
    """
    session_id = session_dir.name
    messages: list[OpenCodeMessageRecord] = []
    for message_path in sorted(session_dir.glob("*.json")):
        payload = _read_json(message_path)
        if isinstance(payload, dict):
            messages.append(OpenCodeMessageRecord.model_validate(payload))

    cwd = next((m.cwd for m in messages if m.cwd), "")
    message_count = sum(1 for m in messages if m.is_conversation)
    timestamps = [
        ts for m in messages if (ts := _from_epoch_ms(m.created_ms)) is not None
    ]

    preview = ""
    for message in sorted(messages, key=_creation_order):
        if message.role != "user" or not message.id:
            continue
        preview = _load_part_text(part_root / message.id)[:preview_length]
        if preview:
            break

    return Session(
        id=session_id,
        title=preview or session_id,
        project=cwd,
        preview=preview,
        message_count=message_count,
        last_activity=max(timestamps) if timestamps else _now(clock),
        first_timestamp=min(timestamps) if timestamps else None,
        source=SourceKind.OPENCODE,
        locator=SourceLocator(directory=str(session_dir), file_name=session_id),
    )


def _load_part_text(part_dir: Path) -> str:
    """Join the real text parts of one message, skipping synthetic ones."""
    if not part_dir.is_dir():
        return ""
    texts: list[str] = []
    for part_path in sorted(part_dir.glob("*.json")):
        payload = _read_json(part_path)
        if not isinstance(payload, dict):
            continue
        part = OpenCodePartRecord.model_validate(payload)
        if part.is_real_text:
            texts.append(part.text)
    return "\n".join(texts)


def _creation_order(message: OpenCodeMessageRecord) -> int:
    created = message.created_ms
    return created if created is not None else 0


def _decode_project_folder(folder: str) -> str:
    """Decode a Claude project folder '-Users-foo-src-app' -> '/Users/foo/src/app'."""
    if not folder:
        return ""
    return folder.replace("-", "/")


def _parse_iso_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _from_epoch_ms(value: int | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _read_json(path: Path) -> object:
    try:
        with open(path, encoding="utf-8") as file:
            return json.load(file)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError):
        logger.debug("Skipping unreadable JSON file %s", path)
        return None


def _now(clock: Clock | None) -> datetime:
    return clock() if clock is not None else datetime.now(UTC)
