"""Protocol definitions for data access."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pathlib import Path


class DatabaseProtocol(Protocol):
    """Async database interface."""

    async def execute(self, sql: str, params: tuple[Any, ...] = ()) -> Any: ...

    async def execute_many(self, sql: str, params_seq: list[tuple[Any, ...]]) -> None: ...

    async def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[Any]: ...

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> Any | None: ...

    async def commit(self) -> None: ...


class LoadDiagnostics(Protocol):
    """Sink for the per-file outcomes of one source load."""

    def record_excluded(self, path: Path) -> None: ...

    def record_failed(self, path: Path, reason: str) -> None: ...

    def record_empty(self, path: Path) -> None: ...

    def record_loaded(self, count: int) -> None: ...
