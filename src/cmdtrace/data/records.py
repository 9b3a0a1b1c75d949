"""Tolerant schemas for raw transcript records.

Every field is optional. Values of the wrong JSON type are coerced to the
field default instead of failing validation, so any JSON object decodes.
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def _as_dict(value: object) -> dict[str, object] | None:
    return value if isinstance(value, dict) else None


def _as_epoch_ms(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def _is_true(value: object) -> bool:
    return value is True


LooseStr = Annotated[str, BeforeValidator(_as_str)]
LooseFlag = Annotated[bool, BeforeValidator(_is_true)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# Claude Code: one JSON object per line of <project>/<session>.jsonl


class ClaudeMessage(_Record):
    """The ``message`` object nested in a user/assistant log line."""

    role: LooseStr = ""
    content: Any = None


class ClaudeLogRecord(_Record):
    """One line of a Claude Code session log."""

    record_type: LooseStr = Field(default="", alias="type")
    session_id: LooseStr = Field(default="", alias="sessionId")
    cwd: LooseStr = ""
    timestamp: LooseStr = ""
    message: Annotated[ClaudeMessage | None, BeforeValidator(_as_dict)] = None

    @property
    def is_conversation(self) -> bool:
        return self.record_type in {"user", "assistant"}

    def user_text(self) -> str:
        """Plain text of a user record, or ``""``."""
        if self.record_type != "user" or self.message is None:
            return ""
        return _content_text(self.message.content)


def _content_text(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(_as_str(block.get("text")))
        return "\n".join(part for part in parts if part)
    return ""


# OpenCode: storage/message/<session>/<message>.json and storage/part/<message>/<part>.json


class OpenCodePath(_Record):
    cwd: LooseStr = ""


class OpenCodeTime(_Record):
    created: Annotated[int | None, BeforeValidator(_as_epoch_ms)] = None


class OpenCodeMessageRecord(_Record):
    """One message file of an OpenCode session directory."""

    id: LooseStr = ""
    role: LooseStr = ""
    path: Annotated[OpenCodePath | None, BeforeValidator(_as_dict)] = None
    time: Annotated[OpenCodeTime | None, BeforeValidator(_as_dict)] = None

    @property
    def is_conversation(self) -> bool:
        return self.role in {"user", "assistant"}

    @property
    def cwd(self) -> str:
        return self.path.cwd if self.path is not None else ""

    @property
    def created_ms(self) -> int | None:
        return self.time.created if self.time is not None else None


class OpenCodePartRecord(_Record):
    """One content part of an OpenCode message."""

    part_type: LooseStr = Field(default="", alias="type")
    text: LooseStr = ""
    synthetic: LooseFlag = False

    @property
    def is_real_text(self) -> bool:
        return self.part_type == "text" and not self.synthetic and bool(self.text)
