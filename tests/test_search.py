"""Tests for query parsing and session filtering."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta, timezone

import pytest

from cmdtrace.data.overlay import MetadataOverlay
from cmdtrace.data.search import (
    QuerySyntaxError,
    date_matcher,
    filter_sessions,
    message_count_matcher,
    parse_query,
)
from cmdtrace.data.tags import TagRegistry, rename_tag
from cmdtrace.models.query import QueryOperator, SessionQuery
from cmdtrace.models.sessions import Session

type Factory = Callable[..., Session]


def _ids(sessions: list[Session]) -> list[str]:
    return [s.id for s in sessions]


class TestParseQuery:
    @pytest.mark.parametrize(
        ("text", "operator", "term"),
        [
            ("title: Login ", QueryOperator.TITLE, "Login"),
            ("tag:work", QueryOperator.TAG, "work"),
            ("project:api", QueryOperator.PROJECT, "api"),
            ("content:stack trace", QueryOperator.CONTENT, "stack trace"),
            ("date:today", QueryOperator.DATE, "today"),
            ("regex:^fix", QueryOperator.REGEX, "^fix"),
            ("messages:>5", QueryOperator.MESSAGES, ">5"),
            ("  plain words  ", QueryOperator.FREE_TEXT, "plain words"),
        ],
    )
    def test_classifies_prefixes(self, text: str, operator: QueryOperator, term: str) -> None:
        parsed = parse_query(text)
        assert parsed is not None
        assert parsed.operator is operator
        assert parsed.term == term

    def test_blank_text_is_no_query(self) -> None:
        assert parse_query("   ") is None

    def test_prefixes_are_case_sensitive(self) -> None:
        parsed = parse_query("TAG:work")
        assert parsed is not None
        assert parsed.operator is QueryOperator.FREE_TEXT


class TestFlagStages:
    def test_empty_query_returns_everything_sorted(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        now = datetime(2025, 6, 15, tzinfo=UTC)
        sessions = [
            make_session("old", last_activity=now - timedelta(days=3)),
            make_session("new", last_activity=now),
            make_session("mid", last_activity=now - timedelta(days=1)),
        ]
        overlay.toggle_archive("old")
        result = filter_sessions(sessions, SessionQuery(show_archived=True), overlay)
        assert _ids(result.sessions) == ["new", "mid", "old"]
        assert result.search_term is None
        assert result.error is None

    def test_archived_hidden_by_default(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [make_session("a"), make_session("b")]
        overlay.toggle_archive("a")
        result = filter_sessions(sessions, SessionQuery(), overlay)
        assert _ids(result.sessions) == ["b"]

    def test_favorites_only(self, make_session: Factory, overlay: MetadataOverlay) -> None:
        sessions = [make_session("a"), make_session("b")]
        overlay.toggle_favorite("b")
        result = filter_sessions(sessions, SessionQuery(show_favorites_only=True), overlay)
        assert _ids(result.sessions) == ["b"]

    def test_selected_tag_is_exact(self, make_session: Factory, overlay: MetadataOverlay) -> None:
        sessions = [make_session("a"), make_session("b")]
        overlay.add_tag("a", "work")
        overlay.add_tag("b", "homework")
        result = filter_sessions(sessions, SessionQuery(selected_tag="work"), overlay)
        assert _ids(result.sessions) == ["a"]


class TestOperators:
    def test_title_matches_custom_name(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [make_session("a", title="Deploy script"), make_session("b", title="Other")]
        overlay.set_custom_name("b", "Release DEPLOY notes")
        result = filter_sessions(sessions, SessionQuery(search_text="title:deploy"), overlay)
        assert sorted(_ids(result.sessions)) == ["a", "b"]
        assert result.search_term is None

    def test_tag_operator_never_falls_through(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [
            make_session("tagged"),
            make_session("mentions", title="foo in the title", preview="foo"),
        ]
        overlay.add_tag("tagged", "Foobar")
        result = filter_sessions(sessions, SessionQuery(search_text="tag:foo"), overlay)
        assert _ids(result.sessions) == ["tagged"]

    def test_project_matches_path_or_name(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [
            make_session("a", project="/Users/me/src/Api-Server"),
            make_session("b", project="/Users/me/src/web"),
        ]
        result = filter_sessions(sessions, SessionQuery(search_text="project:api"), overlay)
        assert _ids(result.sessions) == ["a"]

    def test_content_matches_preview_only(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [
            make_session("a", preview="Traceback in worker"),
            make_session("b", title="traceback"),
        ]
        result = filter_sessions(sessions, SessionQuery(search_text="content:TRACEBACK"), overlay)
        assert _ids(result.sessions) == ["a"]

    def test_messages_range(self, make_session: Factory, overlay: MetadataOverlay) -> None:
        sessions = [make_session(f"s{n}", message_count=n) for n in (3, 5, 10, 11)]
        result = filter_sessions(sessions, SessionQuery(search_text="messages:5..10"), overlay)
        assert sorted(_ids(result.sessions)) == ["s10", "s5"]

    def test_date_range(self, make_session: Factory, overlay: MetadataOverlay) -> None:
        sessions = [
            make_session("jan1", last_activity=datetime(2025, 1, 1, 0, 30, tzinfo=UTC)),
            make_session("jan2", last_activity=datetime(2025, 1, 2, 12, 0, tzinfo=UTC)),
            make_session("jan3", last_activity=datetime(2025, 1, 3, 23, 30, tzinfo=UTC)),
            make_session("jan4", last_activity=datetime(2025, 1, 4, 0, 10, tzinfo=UTC)),
        ]
        result = filter_sessions(
            sessions,
            SessionQuery(search_text="date:2025-01-01..2025-01-03"),
            overlay,
            now=datetime(2025, 2, 1, tzinfo=UTC),
        )
        assert _ids(result.sessions) == ["jan3", "jan2", "jan1"]

    def test_regex_is_case_insensitive(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [
            make_session("a", title="Fixing login bug"),
            make_session("b", title="Refactor UI"),
        ]
        result = filter_sessions(sessions, SessionQuery(search_text="regex:bug|fix"), overlay)
        assert _ids(result.sessions) == ["a"]
        assert result.error is None

    def test_free_text_searches_all_fields_and_sets_term(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        sessions = [
            make_session("by-title", title="Payment flow"),
            make_session("by-tag"),
            make_session("by-name"),
            make_session("miss", title="unrelated"),
        ]
        overlay.add_tag("by-tag", "payments")
        overlay.set_custom_name("by-name", "PAYMENT retry")
        result = filter_sessions(sessions, SessionQuery(search_text="  Payment "), overlay)
        assert sorted(_ids(result.sessions)) == ["by-name", "by-tag", "by-title"]
        assert result.search_term == "payment"


class TestInvalidSyntax:
    @pytest.mark.parametrize(
        "text",
        [
            "regex:(unclosed",
            "messages:lots",
            "messages:1..2..3",
            "messages:>= 5",
            "date:someday",
            "date:",
        ],
    )
    def test_invalid_query_gives_empty_result_with_error(
        self, text: str, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        result = filter_sessions([make_session("a")], SessionQuery(search_text=text), overlay)
        assert result.sessions == []
        assert result.error
        assert result.search_term is None

    def test_zero_matches_has_no_error(
        self, make_session: Factory, overlay: MetadataOverlay
    ) -> None:
        result = filter_sessions(
            [make_session("a", message_count=1)], SessionQuery(search_text="messages:>5"), overlay
        )
        assert result.sessions == []
        assert result.error is None


class TestMessageCountMatcher:
    @pytest.mark.parametrize(
        ("term", "matching"),
        [
            (">=5", [5, 6]),
            ("<=5", [4, 5]),
            (">5", [6]),
            ("<5", [4]),
            ("=5", [5]),
            ("5", [5]),
            ("6..4", []),
            ("4...5", [4, 5]),
            ("+5", [5]),
        ],
    )
    def test_comparisons(self, term: str, matching: list[int]) -> None:
        matches = message_count_matcher(term)
        assert [n for n in (4, 5, 6) if matches(n)] == matching

    def test_rejects_garbage(self) -> None:
        with pytest.raises(QuerySyntaxError):
            message_count_matcher(">=five")


class TestDateMatcher:
    now = datetime(2025, 3, 31, 15, 0, tzinfo=UTC)

    def test_today_and_yesterday(self) -> None:
        today = date_matcher("today", now=self.now)
        yesterday = date_matcher("Yesterday", now=self.now)
        assert today(datetime(2025, 3, 31, 0, 1, tzinfo=UTC))
        assert not today(datetime(2025, 3, 30, 23, 59, tzinfo=UTC))
        assert yesterday(datetime(2025, 3, 30, 23, 59, tzinfo=UTC))

    def test_week_is_seven_days_before_start_of_today(self) -> None:
        week = date_matcher("week", now=self.now)
        assert week(datetime(2025, 3, 24, 0, 0, tzinfo=UTC))
        assert not week(datetime(2025, 3, 23, 23, 59, tzinfo=UTC))

    def test_month_clamps_day(self) -> None:
        month = date_matcher("month", now=self.now)
        assert month(datetime(2025, 2, 28, 0, 0, tzinfo=UTC))
        assert not month(datetime(2025, 2, 27, 23, 59, tzinfo=UTC))

    def test_month_in_january_wraps_year(self) -> None:
        month = date_matcher("month", now=datetime(2025, 1, 15, tzinfo=UTC))
        assert month(datetime(2024, 12, 15, 0, 0, tzinfo=UTC))
        assert not month(datetime(2024, 12, 14, 23, 0, tzinfo=UTC))

    def test_single_day_uses_reference_timezone(self) -> None:
        tokyo = timezone(timedelta(hours=9))
        day = date_matcher("2025-03-01", now=datetime(2025, 3, 5, tzinfo=tokyo))
        assert day(datetime(2025, 2, 28, 16, 0, tzinfo=UTC))
        assert not day(datetime(2025, 2, 28, 14, 0, tzinfo=UTC))

    def test_reversed_range_matches_nothing(self) -> None:
        matches = date_matcher("2025-01-03..2025-01-01", now=self.now)
        assert not matches(datetime(2025, 1, 2, tzinfo=UTC))

    def test_extra_dots_in_range_are_ignored(self) -> None:
        matches = date_matcher("2025-01-01...2025-01-03", now=self.now)
        assert matches(datetime(2025, 1, 3, 23, 0, tzinfo=UTC))
        assert not matches(datetime(2025, 1, 4, 0, 0, tzinfo=UTC))

    def test_padded_range_end_is_rejected(self) -> None:
        with pytest.raises(QuerySyntaxError):
            date_matcher("2025-01-01.. 2025-01-03", now=self.now)


class TestTagRenameMembership:
    def test_rename_moves_membership(self, make_session: Factory, overlay: MetadataOverlay) -> None:
        sessions = [make_session("a"), make_session("b"), make_session("c")]
        overlay.add_tag("a", "x")
        overlay.add_tag("c", "x")
        before = filter_sessions(sessions, SessionQuery(search_text="tag:x"), overlay)

        rename_tag(TagRegistry(), overlay, "x", "y")

        after_new = filter_sessions(sessions, SessionQuery(search_text="tag:y"), overlay)
        after_old = filter_sessions(sessions, SessionQuery(search_text="tag:x"), overlay)
        assert _ids(after_new.sessions) == _ids(before.sessions)
        assert after_old.sessions == []
