"""Tag registry and tag aggregation over the metadata overlay."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import TYPE_CHECKING

from cmdtrace.errors import TagConflictError, TagHierarchyError
from cmdtrace.models.metadata import TagInfo, TagSortMode

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cmdtrace.data.overlay import MetadataOverlay

logger = logging.getLogger(__name__)

VISIBLE_TAG_LIMIT = 5


class TagRegistry:
    """Known tags keyed by name, behind a coarse lock."""

    def __init__(self, tags: Iterable[TagInfo] = ()) -> None:
        self._lock = threading.RLock()
        self._tags: dict[str, TagInfo] = {tag.name: tag.model_copy() for tag in tags}

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def get(self, name: str) -> TagInfo | None:
        with self._lock:
            tag = self._tags.get(name)
            return tag.model_copy() if tag is not None else None

    def snapshot(self) -> dict[str, TagInfo]:
        with self._lock:
            return {name: tag.model_copy() for name, tag in self._tags.items()}

    def upsert(self, tag: TagInfo) -> None:
        with self._lock:
            self._tags[tag.name] = tag.model_copy()

    def remove(self, name: str) -> TagInfo | None:
        with self._lock:
            return self._tags.pop(name, None)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tags

    def __len__(self) -> int:
        with self._lock:
            return len(self._tags)


def tag_count(name: str, overlay: MetadataOverlay) -> int:
    """Number of sessions carrying ``name``."""
    return sum(1 for _, meta in overlay.items() if name in meta.tags)


def all_tags(
    registry: TagRegistry, sort_mode: TagSortMode, overlay: MetadataOverlay
) -> list[TagInfo]:
    """Every registered tag, ordered by ``sort_mode``.

    Count orderings break ties alphabetically.
    """
    tags = list(registry.snapshot().values())
    match sort_mode:
        case TagSortMode.IMPORTANT:
            return sorted(tags, key=lambda t: (not t.is_important, t.name))
        case TagSortMode.ALPHABETICAL:
            return sorted(tags, key=lambda t: t.name)
        case TagSortMode.COUNT_DESC:
            counts = _tag_counts(overlay)
            return sorted(tags, key=lambda t: (-counts[t.name], t.name))
        case TagSortMode.COUNT_ASC:
            counts = _tag_counts(overlay)
            return sorted(tags, key=lambda t: (counts[t.name], t.name))


def visible_tags(
    registry: TagRegistry,
    visible_names: list[str],
    sort_mode: TagSortMode,
    overlay: MetadataOverlay,
) -> list[TagInfo]:
    """Tags shown in the quick-filter bar.

    With no pinned names, the first few important tags in ``sort_mode``
    order. Otherwise the pinned names in their given order, skipping names
    that are no longer registered.
    """
    if not visible_names:
        important = [t for t in all_tags(registry, sort_mode, overlay) if t.is_important]
        return important[:VISIBLE_TAG_LIMIT]
    known = registry.snapshot()
    return [known[name] for name in visible_names if name in known]


def root_tags(
    registry: TagRegistry, sort_mode: TagSortMode, overlay: MetadataOverlay
) -> list[TagInfo]:
    return [t for t in all_tags(registry, sort_mode, overlay) if t.parent_tag is None]


def child_tags(
    parent: str, registry: TagRegistry, sort_mode: TagSortMode, overlay: MetadataOverlay
) -> list[TagInfo]:
    return [t for t in all_tags(registry, sort_mode, overlay) if t.parent_tag == parent]


def ensure_tag(registry: TagRegistry, name: str) -> bool:
    """Register ``name`` with default styling if unknown. Returns True if added."""
    with registry.lock:
        if name in registry:
            return False
        registry.upsert(TagInfo(name=name))
    logger.debug("Registered tag %s", name)
    return True


def rename_tag(registry: TagRegistry, overlay: MetadataOverlay, old: str, new: str) -> None:
    """Rename a tag in the registry, on every session and on child tags.

    Raises:
        TagConflictError: If a different tag is already named ``new``.
        TagHierarchyError: If a nested tag would adopt tags that still name
            ``new`` as their parent.
    """
    if old == new:
        return
    with registry.lock:
        tags = registry.snapshot()
        if new in tags:
            raise TagConflictError(
                f"Tag {new!r} already exists",
                hint="Delete or rename the existing tag first.",
            )
        current = tags.get(old)
        if current is not None and current.parent_tag is not None:
            if any(t.parent_tag == new for t in tags.values()):
                raise TagHierarchyError(
                    f"Tag {old!r} is nested and cannot take over children of {new!r}",
                    hint="Only one level of tag nesting is supported.",
                )
        info = registry.remove(old)
        if info is not None:
            registry.upsert(info.model_copy(update={"name": new}))
        for child in registry.snapshot().values():
            if child.parent_tag == old:
                registry.upsert(child.model_copy(update={"parent_tag": new}))
        touched = overlay.replace_tag(old, new)
    logger.info("Renamed tag %s -> %s on %d sessions", old, new, touched)


def delete_tag(registry: TagRegistry, overlay: MetadataOverlay, name: str) -> None:
    """Remove a tag everywhere. Child tags keep their now-dangling parent."""
    with registry.lock:
        registry.remove(name)
        touched = overlay.strip_tag(name)
    logger.info("Deleted tag %s from %d sessions", name, touched)


def set_parent(registry: TagRegistry, name: str, parent: str | None) -> TagInfo:
    """Set or clear a tag's parent, keeping nesting one level deep.

    Raises:
        TagHierarchyError: If either tag is unknown, the tag would be its own
            parent, the parent is itself a child, or the tag has children.
    """
    with registry.lock:
        tags = registry.snapshot()
        info = tags.get(name)
        if info is None:
            raise TagHierarchyError(f"Unknown tag: {name}")
        if parent is not None:
            if parent == name:
                raise TagHierarchyError(f"Tag {name!r} cannot be its own parent")
            parent_info = tags.get(parent)
            if parent_info is None:
                raise TagHierarchyError(f"Unknown parent tag: {parent}")
            if parent_info.parent_tag is not None:
                raise TagHierarchyError(
                    f"Tag {parent!r} is already nested under {parent_info.parent_tag!r}",
                    hint="Only one level of tag nesting is supported.",
                )
            if any(t.parent_tag == name for t in tags.values()):
                raise TagHierarchyError(
                    f"Tag {name!r} has child tags and cannot be nested",
                    hint="Move or clear its children first.",
                )
        updated = info.model_copy(update={"parent_tag": parent})
        registry.upsert(updated)
    return updated


def _tag_counts(overlay: MetadataOverlay) -> Counter[str]:
    counts: Counter[str] = Counter()
    for _, meta in overlay.items():
        counts.update(set(meta.tags))
    return counts
