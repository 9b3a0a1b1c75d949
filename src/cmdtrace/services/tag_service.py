"""Tag service: tag registry queries and mutations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from result import Err, Ok, Result

from cmdtrace.data import tags as tag_ops
from cmdtrace.errors import TagConflictError, TagHierarchyError
from cmdtrace.models.metadata import TagInfo, ViewSettings

if TYPE_CHECKING:
    from cmdtrace.data.overlay import MetadataOverlay
    from cmdtrace.data.repositories import MetadataRepository
    from cmdtrace.data.tags import TagRegistry
    from cmdtrace.models.metadata import TagSortMode

logger = logging.getLogger(__name__)


class TagService:
    """Service for tag listings and tag edits.

    Edits are written through to the repository when one is configured.
    """

    def __init__(
        self,
        registry: TagRegistry,
        overlay: MetadataOverlay,
        *,
        settings: ViewSettings | None = None,
        repository: MetadataRepository | None = None,
    ) -> None:
        self._registry = registry
        self._overlay = overlay
        self._settings = settings if settings is not None else ViewSettings()
        self._repository = repository

    @property
    def settings(self) -> ViewSettings:
        return self._settings

    async def list_tags(self, sort_mode: TagSortMode | None = None) -> Result[list[TagInfo], str]:
        """List all tags, in the saved sort order unless ``sort_mode`` is given."""
        mode = sort_mode or self._settings.tag_sort_mode
        return Ok(tag_ops.all_tags(self._registry, mode, self._overlay))

    async def visible_tags(
        self,
        visible_names: list[str] | None = None,
        sort_mode: TagSortMode | None = None,
    ) -> Result[list[TagInfo], str]:
        names = self._settings.visible_tags if visible_names is None else visible_names
        mode = sort_mode or self._settings.tag_sort_mode
        return Ok(tag_ops.visible_tags(self._registry, names, mode, self._overlay))

    async def root_tags(self, sort_mode: TagSortMode | None = None) -> Result[list[TagInfo], str]:
        mode = sort_mode or self._settings.tag_sort_mode
        return Ok(tag_ops.root_tags(self._registry, mode, self._overlay))

    async def child_tags(
        self, parent: str, sort_mode: TagSortMode | None = None
    ) -> Result[list[TagInfo], str]:
        mode = sort_mode or self._settings.tag_sort_mode
        return Ok(tag_ops.child_tags(parent, self._registry, mode, self._overlay))

    def usage_count(self, name: str) -> int:
        return tag_ops.tag_count(name, self._overlay)

    async def upsert_tag(self, info: TagInfo) -> Result[TagInfo, str]:
        """Create or update a tag's color and importance.

        The parent is changed only through ``set_parent``.
        """
        if not info.name.strip():
            return Err("Tag name must not be empty")
        existing = self._registry.get(info.name)
        parent = existing.parent_tag if existing is not None else None
        updated = info.model_copy(update={"parent_tag": parent})
        self._registry.upsert(updated)
        await self._save_tags()
        return Ok(updated)

    async def rename_tag(self, old: str, new: str) -> Result[None, str]:
        if not new.strip():
            return Err("Tag name must not be empty")
        if old not in self._registry:
            return Err(f"Tag {old} not found")
        try:
            tag_ops.rename_tag(self._registry, self._overlay, old, new)
        except (TagConflictError, TagHierarchyError) as exc:
            return Err(str(exc))
        await self._save_all()
        return Ok(None)

    async def delete_tag(self, name: str) -> Result[None, str]:
        if name not in self._registry:
            return Err(f"Tag {name} not found")
        tag_ops.delete_tag(self._registry, self._overlay, name)
        await self._save_all()
        return Ok(None)

    async def set_parent(self, name: str, parent: str | None) -> Result[TagInfo, str]:
        try:
            updated = tag_ops.set_parent(self._registry, name, parent)
        except TagHierarchyError as exc:
            return Err(str(exc))
        await self._save_tags()
        return Ok(updated)

    async def attach_tag(self, session_id: str, name: str) -> Result[bool, str]:
        """Tag a session, registering the tag on first use."""
        name = name.strip()
        if not name:
            return Err("Tag name must not be empty")
        added = self._overlay.add_tag(session_id, name)
        tag_ops.ensure_tag(self._registry, name)
        await self._save_all()
        return Ok(added)

    async def detach_tag(self, session_id: str, name: str) -> Result[bool, str]:
        removed = self._overlay.remove_tag(session_id, name)
        if removed and self._repository is not None:
            await self._repository.save_overlay(self._overlay.snapshot())
        return Ok(removed)

    async def _save_tags(self) -> None:
        if self._repository is not None:
            await self._repository.save_tags(self._registry.snapshot())

    async def _save_all(self) -> None:
        if self._repository is not None:
            await self._repository.save_tags(self._registry.snapshot())
            await self._repository.save_overlay(self._overlay.snapshot())
