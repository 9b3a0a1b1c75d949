"""Service container with DI wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cmdtrace.data.db import Database
from cmdtrace.data.overlay import MetadataOverlay
from cmdtrace.data.project_overlay import ProjectOverlay
from cmdtrace.data.repositories import MetadataRepository
from cmdtrace.data.tags import TagRegistry
from cmdtrace.models.sessions import SourceKind
from cmdtrace.services.project_service import ProjectService
from cmdtrace.services.session_service import SessionService
from cmdtrace.services.tag_service import TagService

if TYPE_CHECKING:
    from cmdtrace.config import Config
    from cmdtrace.data.parser import Clock

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Holds all application services. Built once at startup, immutable."""

    db: Database
    repository: MetadataRepository
    overlay: MetadataOverlay
    project_overlay: ProjectOverlay
    registry: TagRegistry
    session_service: SessionService
    tag_service: TagService
    project_service: ProjectService

    @classmethod
    async def create(cls, config: Config, *, clock: Clock | None = None) -> ServiceContainer:
        """Async factory that wires all dependencies."""
        db = Database(config.db_path)
        await db.__aenter__()

        repository = MetadataRepository(db)
        overlay = MetadataOverlay(await repository.load_overlay(), clock=clock)
        project_overlay = ProjectOverlay(await repository.load_projects(), clock=clock)
        registry = TagRegistry(await repository.load_tags())
        settings = await repository.load_settings()

        try:
            active_source = SourceKind(settings.selected_source)
        except ValueError:
            logger.warning("Unknown saved source %r, using claude", settings.selected_source)
            active_source = SourceKind.CLAUDE

        session_service = SessionService(config, active_source=active_source, clock=clock)
        tag_service = TagService(registry, overlay, settings=settings, repository=repository)
        project_service = ProjectService(overlay=project_overlay, repository=repository)

        return cls(
            db=db,
            repository=repository,
            overlay=overlay,
            project_overlay=project_overlay,
            registry=registry,
            session_service=session_service,
            tag_service=tag_service,
            project_service=project_service,
        )

    async def save(self) -> None:
        """Persist session and project metadata, the tag registry and view settings."""
        settings = self.tag_service.settings.model_copy(
            update={"selected_source": self.session_service.active_source.value}
        )
        await self.repository.save_overlay(self.overlay.snapshot())
        await self.repository.save_projects(self.project_overlay.snapshot())
        await self.repository.save_tags(self.registry.snapshot())
        await self.repository.save_settings(settings)

    async def close(self) -> None:
        """Shut down all services."""
        await self.session_service.close()
        await self.db.__aexit__(None, None, None)
