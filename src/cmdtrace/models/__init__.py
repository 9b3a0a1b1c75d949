"""Pydantic models for CmdTrace."""

from cmdtrace.models.loading import LoadReport
from cmdtrace.models.metadata import (
    DEFAULT_TAG_COLOR,
    SessionMetadata,
    TagInfo,
    TagSortMode,
    ViewSettings,
)
from cmdtrace.models.projects import (
    DEFAULT_PROJECT_COLOR,
    ProjectMetadata,
    ProjectStats,
    ProjectSummary,
)
from cmdtrace.models.query import FilterResult, ParsedQuery, QueryOperator, SessionQuery
from cmdtrace.models.sessions import Session, SourceKind, SourceLocator

__all__ = [
    "DEFAULT_PROJECT_COLOR",
    "DEFAULT_TAG_COLOR",
    "FilterResult",
    "LoadReport",
    "ParsedQuery",
    "ProjectMetadata",
    "ProjectStats",
    "ProjectSummary",
    "QueryOperator",
    "Session",
    "SessionMetadata",
    "SessionQuery",
    "SourceKind",
    "SourceLocator",
    "TagInfo",
    "TagSortMode",
    "ViewSettings",
]
