"""Query-operator parsing and session filtering."""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from cmdtrace.data.ranking import rank_sessions
from cmdtrace.models.query import FilterResult, ParsedQuery, QueryOperator, SessionQuery

if TYPE_CHECKING:
    from cmdtrace.data.overlay import MetadataOverlay
    from cmdtrace.models.metadata import SessionMetadata
    from cmdtrace.models.sessions import Session

logger = logging.getLogger(__name__)

type SessionPredicate = Callable[[Session], bool]

_PREFIXED_OPERATORS = tuple(op for op in QueryOperator if op is not QueryOperator.FREE_TEXT)
_DAY_FORMAT = "%Y-%m-%d"
_INTEGER = re.compile(r"[+-]?[0-9]+")
_COMPARISONS: tuple[tuple[str, Callable[[int, int], bool]], ...] = (
    (">=", lambda count, value: count >= value),
    ("<=", lambda count, value: count <= value),
    (">", lambda count, value: count > value),
    ("<", lambda count, value: count < value),
    ("=", lambda count, value: count == value),
)


class QuerySyntaxError(ValueError):
    """Search text that cannot be turned into a predicate."""


def parse_query(search_text: str) -> ParsedQuery | None:
    """Classify search text by its operator prefix.

    Returns ``None`` when the text is blank. Prefixes are checked in
    ``QueryOperator`` order and are case-sensitive.
    """
    query = search_text.strip()
    if not query:
        return None
    for operator in _PREFIXED_OPERATORS:
        if query.startswith(operator.value):
            return ParsedQuery(operator=operator, term=query[len(operator.value) :].strip())
    return ParsedQuery(operator=QueryOperator.FREE_TEXT, term=query)


def filter_sessions(
    sessions: list[Session],
    query: SessionQuery,
    overlay: MetadataOverlay,
    *,
    now: datetime | None = None,
) -> FilterResult:
    """Narrow and order sessions for display.

    Args:
        sessions: Loaded sessions of the active source.
        query: Search text and list flags.
        overlay: Per-session user metadata.
        now: Reference time for relative ``date:`` terms. Its timezone is the
            local timezone used for calendar-day comparisons.

    Returns:
        FilterResult with the ordered sessions. Invalid search syntax gives an
        empty list and ``error`` set. This function never raises for any
        search text.
    """
    metadata = overlay.snapshot()
    result = list(sessions)

    if not query.show_archived:
        result = [s for s in result if not _meta_flag(metadata.get(s.id), "is_archived")]
    if query.show_favorites_only:
        result = [s for s in result if _meta_flag(metadata.get(s.id), "is_favorite")]
    if query.selected_tag is not None:
        tag = query.selected_tag
        result = [s for s in result if tag in _meta_tags(metadata.get(s.id))]

    search_term: str | None = None
    parsed = parse_query(query.search_text)
    if parsed is not None:
        try:
            predicate = build_predicate(parsed, metadata, now=now)
        except QuerySyntaxError as exc:
            logger.debug("Rejected search text %r: %s", query.search_text, exc)
            return FilterResult(sessions=[], search_term=None, error=str(exc))
        result = [s for s in result if predicate(s)]
        if parsed.operator is QueryOperator.FREE_TEXT:
            search_term = parsed.term.lower()

    ranked = rank_sessions(result, lambda sid: _meta_flag(metadata.get(sid), "is_pinned"))
    return FilterResult(sessions=ranked, search_term=search_term)


def build_predicate(
    parsed: ParsedQuery,
    metadata: dict[str, SessionMetadata],
    *,
    now: datetime | None = None,
) -> SessionPredicate:
    """Build the session predicate for one parsed query.

    Raises ``QuerySyntaxError`` for an invalid regex or an unparseable
    ``date:`` / ``messages:`` term.
    """
    term = parsed.term
    lowered = term.lower()

    def custom_name(session: Session) -> str:
        meta = metadata.get(session.id)
        return (meta.custom_name or "") if meta is not None else ""

    def tags(session: Session) -> list[str]:
        return _meta_tags(metadata.get(session.id))

    match parsed.operator:
        case QueryOperator.TITLE:
            return lambda s: lowered in s.title.lower() or lowered in custom_name(s).lower()
        case QueryOperator.TAG:
            return lambda s: any(lowered in tag.lower() for tag in tags(s))
        case QueryOperator.PROJECT:
            return lambda s: lowered in s.project.lower() or lowered in s.project_name.lower()
        case QueryOperator.CONTENT:
            return lambda s: lowered in s.preview.lower()
        case QueryOperator.DATE:
            matches_date = date_matcher(term, now=now)
            return lambda s: matches_date(s.last_activity)
        case QueryOperator.REGEX:
            try:
                pattern = re.compile(term, re.IGNORECASE)
            except re.error as exc:
                raise QuerySyntaxError(f"Invalid regex pattern {term!r}: {exc}") from exc
            return lambda s: any(
                pattern.search(target) is not None
                for target in (s.title, s.project, s.preview, custom_name(s))
            )
        case QueryOperator.MESSAGES:
            matches_count = message_count_matcher(term)
            return lambda s: matches_count(s.message_count)
        case _:
            return lambda s: (
                lowered in s.title.lower()
                or lowered in s.project.lower()
                or lowered in s.preview.lower()
                or lowered in custom_name(s).lower()
                or any(lowered in tag.lower() for tag in tags(s))
            )


def date_matcher(term: str, *, now: datetime | None = None) -> Callable[[datetime], bool]:
    """Turn a ``date:`` term into a predicate over activity times.

    Accepts ``today``, ``yesterday``, ``week``, ``month``, ``YYYY-MM-DD`` and
    ``YYYY-MM-DD..YYYY-MM-DD`` (both ends inclusive).
    """
    reference = now if now is not None else datetime.now().astimezone()
    tz = reference.tzinfo
    today = reference.date()
    start_of_today = datetime.combine(today, datetime.min.time(), tzinfo=tz)

    def local_day(moment: datetime) -> date:
        return moment.astimezone(tz).date()

    match term.lower():
        case "today":
            return lambda moment: local_day(moment) == today
        case "yesterday":
            yesterday = today - timedelta(days=1)
            return lambda moment: local_day(moment) == yesterday
        case "week":
            week_ago = start_of_today - timedelta(days=7)
            return lambda moment: moment >= week_ago
        case "month":
            month_ago = _one_month_before(start_of_today)
            return lambda moment: moment >= month_ago
        case _:
            pass

    if ".." in term:
        parts = _range_parts(term)
        if len(parts) != 2:
            raise QuerySyntaxError(f"Invalid date range {term!r}; expected YYYY-MM-DD..YYYY-MM-DD")
        first = _parse_day(parts[0])
        last = _parse_day(parts[1])
        return lambda moment: first <= local_day(moment) <= last

    day = _parse_day(term)
    return lambda moment: local_day(moment) == day


def message_count_matcher(term: str) -> Callable[[int], bool]:
    """Turn a ``messages:`` term into a predicate over message counts.

    Accepts ``min..max`` (inclusive), ``>=n``, ``<=n``, ``>n``, ``<n``,
    ``=n`` and a bare ``n``.
    """
    if ".." in term:
        parts = _range_parts(term)
        if len(parts) != 2:
            raise QuerySyntaxError(f"Invalid message range {term!r}; expected min..max")
        low = _parse_count(parts[0], term)
        high = _parse_count(parts[1], term)
        return lambda count: low <= count <= high

    for prefix, compare in _COMPARISONS:
        if term.startswith(prefix):
            value = _parse_count(term[len(prefix) :], term)
            return lambda count: compare(count, value)

    value = _parse_count(term, term)
    return lambda count: count == value


def _parse_day(text: str) -> date:
    try:
        return datetime.strptime(text, _DAY_FORMAT).date()
    except ValueError as exc:
        raise QuerySyntaxError(
            f"Unrecognized date filter {text!r}; "
            "use today, yesterday, week, month, YYYY-MM-DD or a range"
        ) from exc


def _range_parts(term: str) -> list[str]:
    """Split ``a..b`` on dots, ignoring empty pieces, so ``a...b`` also works."""
    return [part for part in term.split(".") if part]


def _parse_count(text: str, term: str) -> int:
    if _INTEGER.fullmatch(text) is None:
        raise QuerySyntaxError(f"Invalid message count filter {term!r}")
    return int(text)


def _one_month_before(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _meta_flag(meta: SessionMetadata | None, name: str) -> bool:
    return meta is not None and bool(getattr(meta, name))


def _meta_tags(meta: SessionMetadata | None) -> list[str]:
    return meta.tags if meta is not None else []
