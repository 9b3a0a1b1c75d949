"""User-assigned session state and the tag registry models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

DEFAULT_TAG_COLOR = "#3B82F6"


class SessionMetadata(BaseModel):
    """Per-session overlay state, keyed by ``Session.id``."""

    is_favorite: bool = False
    is_pinned: bool = False
    is_archived: bool = False
    archived_at: datetime | None = None
    custom_name: str | None = None
    tags: list[str] = Field(default_factory=list)


class TagInfo(BaseModel):
    """Tag registry entry. Nesting is at most one level deep."""

    name: str
    color: str = DEFAULT_TAG_COLOR
    is_important: bool = False
    parent_tag: str | None = None


class TagSortMode(StrEnum):
    """Orderings offered for tag listings."""

    IMPORTANT = "important"
    ALPHABETICAL = "alphabetical"
    COUNT_DESC = "count_desc"
    COUNT_ASC = "count_asc"


class ViewSettings(BaseModel):
    """Persisted list-view preferences."""

    tag_sort_mode: TagSortMode = TagSortMode.IMPORTANT
    visible_tags: list[str] = Field(default_factory=list)
    selected_source: str = "claude"
