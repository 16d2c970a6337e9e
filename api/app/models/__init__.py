"""Pydantic models."""

from app.models.error import ErrorDetail
from app.models.github import (
    ActivityCounts,
    ActivityEvent,
    AggregateResult,
    CacheEntry,
    EventKind,
    Project,
    ProjectShowcase,
    ProjectShowcaseItem,
    Provenance,
    RepositorySummary,
    UserProfile,
)

__all__ = [
    "ActivityCounts",
    "ActivityEvent",
    "AggregateResult",
    "CacheEntry",
    "ErrorDetail",
    "EventKind",
    "Project",
    "ProjectShowcase",
    "ProjectShowcaseItem",
    "Provenance",
    "RepositorySummary",
    "UserProfile",
]
