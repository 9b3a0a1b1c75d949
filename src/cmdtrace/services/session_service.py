"""Session service: loading, caching and filtering of sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from result import Err, Ok, Result

from cmdtrace.data.cache import SessionCache
from cmdtrace.data.discovery import load_sessions
from cmdtrace.data.search import filter_sessions
from cmdtrace.errors import SourceAccessError
from cmdtrace.models.loading import LoadReport
from cmdtrace.models.sessions import SourceKind

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from cmdtrace.config import Config
    from cmdtrace.data.overlay import MetadataOverlay
    from cmdtrace.data.parser import Clock
    from cmdtrace.models.query import FilterResult, SessionQuery
    from cmdtrace.models.sessions import Session

logger = logging.getLogger(__name__)

type SessionLoader = Callable[..., list[Session]]
type LoadResult = Result[list[Session], str]


class SessionService:
    """Loads sessions per source off the event loop and serves filtered views.

    The list in ``sessions`` always belongs to ``active_source``. A load that
    finishes after the user switched away is cached but not shown.
    """

    def __init__(
        self,
        config: Config,
        *,
        active_source: SourceKind = SourceKind.CLAUDE,
        cache: SessionCache | None = None,
        clock: Clock | None = None,
        loader: SessionLoader = load_sessions,
    ) -> None:
        self._config = config
        self._active = active_source
        self._cache = cache if cache is not None else SessionCache(clock)
        self._clock = clock
        self._loader = loader
        self._sessions: list[Session] = []
        self._reports: dict[SourceKind, LoadReport] = {}
        self._inflight: dict[SourceKind, asyncio.Task[LoadResult]] = {}

    @property
    def active_source(self) -> SourceKind:
        return self._active

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def cache(self) -> SessionCache:
        return self._cache

    def last_report(self, kind: SourceKind) -> LoadReport | None:
        """Diagnostics of the most recent completed load of ``kind``."""
        return self._reports.get(kind)

    async def reload(self, kind: SourceKind | None = None) -> LoadResult:
        """Load ``kind`` (default: the active source) from disk.

        Concurrent reloads of the same source share one load.

        Returns:
            Ok with the loaded sessions or Err with error message.
        """
        return await asyncio.shield(self._start_load(kind or self._active))

    async def switch_source(self, kind: SourceKind) -> list[Session] | None:
        """Make ``kind`` the active source.

        Returns the cached list when there is one. Otherwise starts a
        background load and returns ``None``; use ``wait_for_source`` to get
        the result.
        """
        self._active = kind
        cached = self._cache.get(kind)
        if cached is not None:
            self._sessions = cached
            return cached
        self._sessions = []
        self._start_load(kind)
        return None

    async def wait_for_source(self, kind: SourceKind) -> LoadResult:
        """Wait for an in-flight load of ``kind``, or load it if not cached."""
        task = self._inflight.get(kind)
        if task is not None:
            return await asyncio.shield(task)
        cached = self._cache.get(kind)
        if cached is not None:
            return Ok(cached)
        return await self.reload(kind)

    async def warm_up(self) -> dict[SourceKind, LoadResult]:
        """Load the active source, then every uncached source concurrently.

        Each source fails on its own; a failure becomes that source's Err.
        """
        active = self._active
        (first,) = await asyncio.gather(self.reload(active), return_exceptions=True)
        results: dict[SourceKind, LoadResult] = {active: _as_load_result(active, first)}
        others = [kind for kind in SourceKind if kind != active and kind not in self._cache]
        outcomes = await asyncio.gather(
            *(self.reload(kind) for kind in others), return_exceptions=True
        )
        for kind, outcome in zip(others, outcomes, strict=True):
            results[kind] = _as_load_result(kind, outcome)
        return results

    def filter(
        self,
        query: SessionQuery,
        overlay: MetadataOverlay,
        *,
        now: datetime | None = None,
    ) -> FilterResult:
        """Filter and rank the active source's sessions."""
        return filter_sessions(self._sessions, query, overlay, now=now)

    async def close(self) -> None:
        """Cancel outstanding background loads."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _load(self, kind: SourceKind) -> LoadResult:
        report = LoadReport()
        try:
            sessions = await asyncio.to_thread(
                self._loader, self._config, kind, diagnostics=report, clock=self._clock
            )
        except SourceAccessError as exc:
            logger.warning("%s", exc)
            return Err(str(exc))
        except Exception as exc:
            logger.exception("Loading %s sessions failed", kind.value)
            return Err(f"Failed to load {kind.value} sessions: {exc}")

        self._cache.put(kind, sessions)
        self._reports[kind] = report
        if kind == self._active:
            self._sessions = list(sessions)
        else:
            logger.debug("Cached %s sessions without applying; active is %s", kind, self._active)
        if report.files_failed:
            logger.info("Skipped %d unreadable %s files", report.files_failed, kind.value)
        return Ok(sessions)

    def _start_load(self, kind: SourceKind) -> asyncio.Task[LoadResult]:
        task = self._inflight.get(kind)
        if task is None:
            task = asyncio.create_task(self._load(kind))
            self._inflight[kind] = task
            task.add_done_callback(lambda _: self._inflight.pop(kind, None))
            task.add_done_callback(_log_exception)
        return task


def _log_exception(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.exception("Unhandled exception in background load", exc_info=exc)


def _as_load_result(kind: SourceKind, outcome: LoadResult | BaseException) -> LoadResult:
    if isinstance(outcome, Exception):
        logger.error("Background load of %s sessions failed: %s", kind.value, outcome)
        return Err(f"Failed to load {kind.value} sessions: {outcome}")
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome
