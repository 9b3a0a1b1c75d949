"""Repository layer for persisted user metadata."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from cmdtrace.models.metadata import SessionMetadata, TagInfo, ViewSettings
from cmdtrace.models.projects import ProjectMetadata

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cmdtrace.data.protocols import DatabaseProtocol

logger = logging.getLogger(__name__)

_SESSION_KIND = "session"
_TAG_KIND = "tag"
_PROJECT_KIND = "project"
_SETTINGS_KIND = "settings"
_SETTINGS_KEY = "view"


class MetadataRepository:
    """Load and save session and project metadata, tags and view settings.

    Each kind is stored as JSON payload rows keyed by ``(kind, key)``.
    Saving a kind replaces all of its rows.
    """

    def __init__(self, db: DatabaseProtocol) -> None:
        self._db = db

    async def load_overlay(self) -> dict[str, SessionMetadata]:
        return await self._load_kind(_SESSION_KIND, SessionMetadata)

    async def save_overlay(self, entries: Mapping[str, SessionMetadata]) -> None:
        await self._replace_kind(_SESSION_KIND, entries)

    async def load_tags(self) -> list[TagInfo]:
        loaded = await self._load_kind(_TAG_KIND, TagInfo)
        return [tag for name, tag in loaded.items() if tag.name == name]

    async def save_tags(self, tags: Mapping[str, TagInfo]) -> None:
        await self._replace_kind(_TAG_KIND, tags)

    async def load_projects(self) -> dict[str, ProjectMetadata]:
        loaded = await self._load_kind(_PROJECT_KIND, ProjectMetadata)
        return {path: meta for path, meta in loaded.items() if meta.path == path}

    async def save_projects(self, projects: Mapping[str, ProjectMetadata]) -> None:
        await self._replace_kind(_PROJECT_KIND, projects)

    async def load_settings(self) -> ViewSettings:
        loaded = await self._load_kind(_SETTINGS_KIND, ViewSettings)
        return loaded.get(_SETTINGS_KEY, ViewSettings())

    async def save_settings(self, settings: ViewSettings) -> None:
        await self._replace_kind(_SETTINGS_KIND, {_SETTINGS_KEY: settings})

    async def _load_kind[M: BaseModel](self, kind: str, model: type[M]) -> dict[str, M]:
        rows = await self._db.fetch_all(
            "SELECT key, payload FROM entities WHERE kind = ? ORDER BY key", (kind,)
        )
        loaded: dict[str, M] = {}
        for row in rows:
            key = str(row["key"])
            try:
                loaded[key] = model.model_validate_json(row["payload"])
            except ValidationError as exc:
                logger.warning("Skipping corrupt %s row %s: %s", kind, key, exc)
        return loaded

    async def _replace_kind(self, kind: str, items: Mapping[str, BaseModel]) -> None:
        updated_at = datetime.now(UTC).isoformat()
        await self._db.execute("DELETE FROM entities WHERE kind = ?", (kind,))
        await self._db.execute_many(
            "INSERT INTO entities (kind, key, payload, updated_at) VALUES (?, ?, ?, ?)",
            [(kind, key, item.model_dump_json(), updated_at) for key, item in items.items()],
        )
        await self._db.commit()
        logger.debug("Saved %d %s rows", len(items), kind)
