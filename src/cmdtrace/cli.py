"""Typer CLI for CmdTrace: sessions, tags and projects commands."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from result import Err, Ok, Result

from cmdtrace.config import Config
from cmdtrace.models.metadata import TagSortMode
from cmdtrace.models.query import SessionQuery
from cmdtrace.models.sessions import SourceKind
from cmdtrace.services.container import ServiceContainer

if TYPE_CHECKING:
    from cmdtrace.data.overlay import MetadataOverlay
    from cmdtrace.models.sessions import Session
    from cmdtrace.services.protocols import (
        ProjectServiceProtocol,
        SessionServiceProtocol,
        TagServiceProtocol,
    )

app = typer.Typer(
    name="cmdtrace",
    help="CmdTrace: browse and filter Claude Code and OpenCode sessions.",
    no_args_is_help=True,
)


@dataclass(frozen=True)
class ProjectEdits:
    """Requested changes for the ``project`` command."""

    pin: bool = False
    favorite: bool = False
    name: str | None = None
    languages: str | None = None
    frameworks: str | None = None


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stderr handler to the ``cmdtrace`` logger namespace."""
    logger = logging.getLogger("cmdtrace")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


@app.callback()
def main(
    ctx: typer.Context,
    claude_dir: Annotated[
        Path | None,
        typer.Option("--claude-dir", help="Path to Claude data directory"),
    ] = None,
    opencode_dir: Annotated[
        Path | None,
        typer.Option("--opencode-dir", help="Path to OpenCode data directory"),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Where tags, favorites and settings are stored"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log to stderr")] = False,
) -> None:
    """Index, organize and filter AI coding-assistant sessions."""
    if verbose:
        setup_logging(logging.DEBUG)
    defaults = Config()
    ctx.obj = Config(
        claude_dir=claude_dir or defaults.claude_dir,
        opencode_dir=opencode_dir or defaults.opencode_dir,
        data_dir=data_dir or defaults.data_dir,
    )


@app.command()
def sessions(
    ctx: typer.Context,
    source: Annotated[
        SourceKind | None,
        typer.Option("--source", "-s", help="Session source; defaults to the last one used"),
    ] = None,
    query: Annotated[
        str,
        typer.Option(
            "--query",
            "-q",
            help="Search text, optionally with title:, tag:, project:, content:, "
            "date:, regex: or messages:",
        ),
    ] = "",
    tag: Annotated[str | None, typer.Option("--tag", help="Only sessions with this tag")] = None,
    archived: Annotated[bool, typer.Option("--archived", help="Include archived sessions")] = False,
    favorites: Annotated[bool, typer.Option("--favorites", help="Only favorite sessions")] = False,
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Maximum rows")] = 50,
) -> None:
    """List sessions, pinned first and newest first."""
    session_query = SessionQuery(
        search_text=query,
        selected_tag=tag,
        show_archived=archived,
        show_favorites_only=favorites,
    )
    asyncio.run(_list_sessions(ctx.obj, source, session_query, limit))


@app.command()
def tags(
    ctx: typer.Context,
    sort: Annotated[
        TagSortMode | None,
        typer.Option("--sort", help="Tag ordering; defaults to the saved one"),
    ] = None,
) -> None:
    """List tags with usage counts, children indented under their parent."""
    asyncio.run(_list_tags(ctx.obj, sort))


@app.command()
def projects(
    ctx: typer.Context,
    source: Annotated[
        SourceKind | None,
        typer.Option("--source", "-s", help="Session source; defaults to the last one used"),
    ] = None,
    search: Annotated[
        str,
        typer.Option("--search", help="Match name, path, languages or frameworks"),
    ] = "",
) -> None:
    """List projects with session and message totals, pinned first."""
    asyncio.run(_list_projects(ctx.obj, source, search))


@app.command()
def project(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Project path as shown by 'projects'")],
    pin: Annotated[bool, typer.Option("--pin", help="Toggle the pinned flag")] = False,
    favorite: Annotated[bool, typer.Option("--favorite", help="Toggle the favorite flag")] = False,
    name: Annotated[
        str | None, typer.Option("--name", help="Display name; empty clears it")
    ] = None,
    languages: Annotated[
        str | None, typer.Option("--languages", help="Comma-separated languages")
    ] = None,
    frameworks: Annotated[
        str | None, typer.Option("--frameworks", help="Comma-separated frameworks")
    ] = None,
) -> None:
    """Show or edit one project's metadata."""
    edits = ProjectEdits(
        pin=pin, favorite=favorite, name=name, languages=languages, frameworks=frameworks
    )
    asyncio.run(_edit_project(ctx.obj, path, edits))


@app.command("archive-old")
def archive_old(
    ctx: typer.Context,
    days: Annotated[int, typer.Option("--days", min=0, help="Idle days before archiving")] = 30,
    source: Annotated[
        SourceKind | None,
        typer.Option("--source", "-s", help="Session source; defaults to the last one used"),
    ] = None,
) -> None:
    """Archive sessions with no activity in the last N days."""
    asyncio.run(_archive_old(ctx.obj, days, source))


async def _list_sessions(
    config: Config, source: SourceKind | None, query: SessionQuery, limit: int
) -> None:
    container = await ServiceContainer.create(config)
    try:
        await _load_source(container.session_service, source)
        result = container.session_service.filter(query, container.overlay)
        await container.save()
    finally:
        await container.close()

    if result.error is not None:
        typer.echo(f"Invalid query: {result.error}", err=True)
        raise typer.Exit(code=2)
    if not result.sessions:
        typer.echo("No sessions found.")
        return
    for session in result.sessions[:limit]:
        typer.echo(_format_session(session, container.overlay))
    hidden = len(result.sessions) - limit
    if hidden > 0:
        typer.echo(f"... {hidden} more")


async def _list_tags(config: Config, sort: TagSortMode | None) -> None:
    container = await ServiceContainer.create(config)
    try:
        service: TagServiceProtocol = container.tag_service
        all_tags = (await service.list_tags(sort)).unwrap()
        roots = (await service.root_tags(sort)).unwrap()
        children = {
            root.name: (await service.child_tags(root.name, sort)).unwrap() for root in roots
        }
    finally:
        await container.close()

    if not all_tags:
        typer.echo("No tags yet.")
        return
    for root in roots:
        typer.echo(_format_tag(root.name, root.is_important, service.usage_count(root.name)))
        for child in children[root.name]:
            line = _format_tag(child.name, child.is_important, service.usage_count(child.name))
            typer.echo(f"  {line}")
    known = {t.name for t in all_tags}
    for orphan in all_tags:
        if orphan.parent_tag is not None and orphan.parent_tag not in known:
            count = service.usage_count(orphan.name)
            typer.echo(_format_tag(orphan.name, orphan.is_important, count))


async def _list_projects(config: Config, source: SourceKind | None, search: str) -> None:
    container = await ServiceContainer.create(config)
    try:
        loaded = await _load_source(container.session_service, source)
        project_service: ProjectServiceProtocol = container.project_service
        summaries = await project_service.list_projects(loaded, search)
        names = {
            item.project_path: project_service.project_metadata(item.project_path)
            for item in summaries.unwrap_or([])
        }
    finally:
        await container.close()

    match summaries:
        case Ok(items) if items:
            for item in items:
                stats = item.stats
                last = f"{stats.last_session:%Y-%m-%d}" if stats.last_session else "-"
                meta = names[item.project_path]
                markers = ("*" if meta.is_pinned else " ") + ("+" if meta.is_favorite else " ")
                label = meta.custom_name or item.project_name or item.project_path
                typer.echo(
                    f"{markers} {label:<30} "
                    f"{stats.total_sessions:>4} sessions {stats.total_messages:>6} messages "
                    f"{stats.active_days:>3} days  last {last}"
                )
        case Ok(_):
            typer.echo("No projects found.")
        case Err(message):
            typer.echo(message, err=True)
            raise typer.Exit(code=1)


async def _edit_project(config: Config, path: str, edits: ProjectEdits) -> None:
    container = await ServiceContainer.create(config)
    try:
        service: ProjectServiceProtocol = container.project_service
        steps: list[Result[object, str]] = []
        if edits.pin:
            steps.append(await service.toggle_pinned(path))
        if edits.favorite:
            steps.append(await service.toggle_favorite(path))
        if edits.name is not None:
            steps.append(await service.set_custom_name(path, edits.name))
        if edits.languages is not None:
            steps.append(await service.set_languages(path, edits.languages.split(",")))
        if edits.frameworks is not None:
            steps.append(await service.set_frameworks(path, edits.frameworks.split(",")))
        meta = service.project_metadata(path)
    finally:
        await container.close()

    for step in steps:
        if isinstance(step, Err):
            typer.echo(step.err_value, err=True)
            raise typer.Exit(code=1)
    typer.echo(f"{meta.display_name} ({meta.path})")
    typer.echo(f"  pinned: {'yes' if meta.is_pinned else 'no'}")
    typer.echo(f"  favorite: {'yes' if meta.is_favorite else 'no'}")
    typer.echo(f"  languages: {', '.join(meta.languages) or '-'}")
    typer.echo(f"  frameworks: {', '.join(meta.frameworks) or '-'}")


async def _archive_old(config: Config, days: int, source: SourceKind | None) -> None:
    container = await ServiceContainer.create(config)
    try:
        loaded = await _load_source(container.session_service, source)
        archived = container.overlay.archive_older_than(loaded, days)
        await container.save()
    finally:
        await container.close()
    typer.echo(f"Archived {archived} sessions.")


async def _load_source(
    service: SessionServiceProtocol, source: SourceKind | None
) -> list[Session]:
    kind = source or service.active_source
    await service.switch_source(kind)
    match await service.wait_for_source(kind):
        case Ok(loaded):
            return loaded
        case Err(message):
            typer.echo(message, err=True)
            raise typer.Exit(code=1)


def _format_session(session: Session, overlay: MetadataOverlay) -> str:
    markers = ("*" if overlay.is_pinned(session.id) else " ") + (
        "+" if overlay.is_favorite(session.id) else " "
    )
    when = session.last_activity.astimezone().strftime("%Y-%m-%d %H:%M")
    name = overlay.display_name(session).replace("\n", " ")
    return f"{markers} {when} {session.message_count:>5}  {name}  [{session.project_name}]"


def _format_tag(name: str, important: bool, count: int) -> str:
    return f"{'!' if important else ' '} {name} ({count})"
