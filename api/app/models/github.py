"""GitHub portfolio models: profile, repositories, activity and the aggregate payload.

Field names mirror the GitHub REST payloads (``avatar_url``, ``stargazers_count``)
so the browser consumer can render either live or cached data unchanged.
Aggregate-level keys are emitted in camelCase (``projectRepos``, ``fromFallback``).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Provenance(str, Enum):
    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"


class EventKind(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"
    ISSUE = "issue"
    OTHER = "other"


_EVENT_KINDS_BY_TYPE = {
    "PushEvent": EventKind.PUSH,
    "PullRequestEvent": EventKind.PULL_REQUEST,
    "IssuesEvent": EventKind.ISSUE,
}


def event_kind_for(event_type: Optional[str]) -> EventKind:
    """Map a GitHub event type string (``PushEvent``) to its coarse kind."""
    return _EVENT_KINDS_BY_TYPE.get(event_type or "", EventKind.OTHER)


class UserProfile(BaseModel):
    """Snapshot of GET /users/{handle}."""

    model_config = ConfigDict(frozen=True)

    login: str
    name: str = ""
    avatar_url: Optional[str] = None
    bio: str = ""
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    html_url: Optional[str] = None

    @field_validator("bio", "name", mode="before")
    @classmethod
    def none_to_empty(cls, v: object) -> object:
        # GitHub returns null for unset bio/name; the page renders "" instead.
        return "" if v is None else v


class RepositorySummary(BaseModel):
    """One entry of GET /users/{handle}/repos."""

    model_config = ConfigDict(frozen=True)

    full_name: str = Field(..., min_length=3)
    name: str = ""
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    html_url: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    updated_at: Optional[str] = None

    @field_validator("topics", mode="before")
    @classmethod
    def topics_default(cls, v: object) -> object:
        return [] if v is None else v


class ActivityEvent(BaseModel):
    """A public event reduced to what the activity counters need."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    type: str = ""
    kind: EventKind = EventKind.OTHER
    repo: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_github(cls, raw: Dict[str, Any]) -> "ActivityEvent":
        repo = raw.get("repo") if isinstance(raw.get("repo"), dict) else {}
        event_type = str(raw.get("type") or "")
        return cls(
            id=str(raw["id"]) if raw.get("id") is not None else None,
            type=event_type,
            kind=event_kind_for(event_type),
            repo=repo.get("name"),
            created_at=raw.get("created_at"),
        )


class ActivityCounts(BaseModel):
    commits: int = Field(default=0, ge=0)
    prs: int = Field(default=0, ge=0)
    issues: int = Field(default=0, ge=0)


class Project(BaseModel):
    """A repository the portfolio wants to spotlight. Declared locally, never fetched."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    repo: str = Field(..., min_length=3, description="owner/name")
    featured: bool = False
    demo_url: Optional[str] = Field(default=None, alias="demoUrl")
    custom_description: Optional[str] = Field(default=None, alias="customDescription")
    tags: List[str] = Field(default_factory=list)

    @field_validator("repo", mode="before")
    @classmethod
    def repo_must_be_owner_slash_name(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip()
            owner, sep, name = v.partition("/")
            if not sep or not owner or not name or "/" in name:
                raise ValueError(f"repo must look like 'owner/name'; got {v!r}")
        return v


class ProjectShowcaseItem(BaseModel):
    """Declared project merged with its resolved repository (null when unavailable)."""

    model_config = ConfigDict(populate_by_name=True)

    repo: str
    available: bool
    featured: bool = False
    description: Optional[str] = None
    demo_url: Optional[str] = Field(default=None, alias="demoUrl")
    tags: List[str] = Field(default_factory=list)
    repository: Optional[RepositorySummary] = None


class ProjectShowcase(BaseModel):
    provenance: Provenance
    projects: List[ProjectShowcaseItem] = Field(default_factory=list)


class AggregateResult(BaseModel):
    """Payload of GET /api/github."""

    model_config = ConfigDict(populate_by_name=True)

    user: UserProfile
    repos: List[RepositorySummary] = Field(default_factory=list)
    project_repos: Dict[str, Optional[RepositorySummary]] = Field(
        default_factory=dict, alias="projectRepos"
    )
    events: List[ActivityEvent] = Field(default_factory=list)
    activity: ActivityCounts = Field(default_factory=ActivityCounts)
    timestamp: int = Field(..., ge=0, description="Epoch milliseconds when the payload was assembled")
    provenance: Provenance = Provenance.LIVE

    @property
    def from_fallback(self) -> bool:
        return self.provenance == Provenance.FALLBACK

    @property
    def from_cache(self) -> bool:
        return self.provenance == Provenance.CACHE

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the browser: camelCase aggregate keys plus provenance booleans."""
        data = self.model_dump(mode="json", by_alias=True)
        data["fromFallback"] = self.from_fallback
        data["fromCache"] = self.from_cache
        return data


class CacheEntry(BaseModel):
    """On-disk cache document. ``version`` guards format changes."""

    version: int
    written_at: float = Field(..., ge=0.0, description="Epoch seconds")
    result: AggregateResult
