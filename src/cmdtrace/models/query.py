"""Query and filter result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from cmdtrace.models.sessions import Session


class QueryOperator(StrEnum):
    """Search operators, listed in prefix-match precedence order."""

    TITLE = "title:"
    TAG = "tag:"
    PROJECT = "project:"
    CONTENT = "content:"
    DATE = "date:"
    REGEX = "regex:"
    MESSAGES = "messages:"
    FREE_TEXT = ""


@dataclass(frozen=True, slots=True)
class SessionQuery:
    """Inputs of one filter pass."""

    search_text: str = ""
    selected_tag: str | None = None
    show_archived: bool = False
    show_favorites_only: bool = False


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    """Search text classified into an operator and its term."""

    operator: QueryOperator
    term: str


@dataclass(slots=True)
class FilterResult:
    """Visible sessions plus the free-text highlight term, if any.

    ``error`` is set when the search text had invalid syntax. In that case
    ``sessions`` is empty.
    """

    sessions: list[Session] = field(default_factory=list)
    search_term: str | None = None
    error: str | None = None
