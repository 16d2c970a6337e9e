"""GitHub data aggregation for the portfolio page.

Each request walks Live -> Cache -> Fallback once:
- live: profile + repos succeeded; result is written through to the cache
- cache: a required call failed and an unexpired cache entry exists
- fallback: nothing else available; a fixed minimal profile

``get_data`` never raises.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Any, Callable, Iterable, Optional, Sequence

from pydantic import ValidationError

from app.models.github import (
    ActivityCounts,
    ActivityEvent,
    AggregateResult,
    EventKind,
    Project,
    ProjectShowcase,
    ProjectShowcaseItem,
    Provenance,
    RepositorySummary,
    UserProfile,
)
from app.services.github_cache import GitHubCacheStore
from app.services.github_client import GitHubClient, UpstreamBundle

logger = logging.getLogger(__name__)

KNOWN_FALLBACK_PROFILES: dict[str, UserProfile] = {
    "lou-16": UserProfile(
        login="lou-16",
        avatar_url="/IMG_0133.jpg",
        name="Gurnoor Singh",
        bio="",
        public_repos=20,
        followers=5,
        following=3,
        html_url="https://github.com/lou-16",
    ),
}


class UpstreamUnavailable(Exception):
    """A required upstream call (profile or repo list) did not succeed."""


def default_fallback_profile(handle: str) -> UserProfile:
    known = KNOWN_FALLBACK_PROFILES.get(handle.lower())
    if known is not None:
        return known
    return UserProfile(login=handle, name=handle, html_url=f"https://github.com/{handle}")


def build_project_repos(
    projects: Iterable[Project],
    repos: Iterable[RepositorySummary],
) -> dict[str, Optional[RepositorySummary]]:
    """One key per declared project: the matching fetched repo, or None if not in the page."""
    by_full_name = {repo.full_name.lower(): repo for repo in repos}
    out: dict[str, Optional[RepositorySummary]] = {}
    for project in projects:
        if project.repo in out:
            continue
        out[project.repo] = by_full_name.get(project.repo.lower())
    return out


def count_activity(events: Iterable[ActivityEvent]) -> ActivityCounts:
    counts = Counter(event.kind for event in events)
    return ActivityCounts(
        commits=counts[EventKind.PUSH],
        prs=counts[EventKind.PULL_REQUEST],
        issues=counts[EventKind.ISSUE],
    )


def resolve_projects(
    projects: Iterable[Project],
    project_repos: dict[str, Optional[RepositorySummary]],
) -> list[ProjectShowcaseItem]:
    """Merge declared metadata with resolved repos; the custom description wins when set."""
    items: list[ProjectShowcaseItem] = []
    for project in projects:
        repo = project_repos.get(project.repo)
        description = project.custom_description or (repo.description if repo else None)
        items.append(
            ProjectShowcaseItem(
                repo=project.repo,
                available=repo is not None,
                featured=project.featured,
                description=description,
                demo_url=project.demo_url,
                tags=list(project.tags),
                repository=repo,
            )
        )
    return items


def _parse_repos(rows: Any) -> list[RepositorySummary]:
    repos: list[RepositorySummary] = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        try:
            repos.append(RepositorySummary.model_validate(row))
        except ValidationError:
            logger.debug("github_repo_row_skipped full_name=%s", row.get("full_name"))
    return repos


def _parse_events(rows: Iterable[dict]) -> list[ActivityEvent]:
    events: list[ActivityEvent] = []
    for row in rows:
        try:
            events.append(ActivityEvent.from_github(row))
        except ValidationError:
            continue
    return events


class GitHubDataService:
    def __init__(
        self,
        handle: str,
        client: GitHubClient,
        projects: Sequence[Project],
        cache: Optional[GitHubCacheStore] = None,
        repo_page_size: int = 100,
        repo_display_count: int = 6,
        events_page_size: int = 30,
        fallback_profile: Optional[UserProfile] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        handle = (handle or "").strip()
        if not handle:
            raise ValueError("GitHub handle must be a non-empty string")
        self.handle = handle
        self._client = client
        self._projects = list(projects)
        self._cache = cache
        self._repo_page_size = repo_page_size
        self._repo_display_count = repo_display_count
        self._events_page_size = events_page_size
        self._fallback_profile = fallback_profile or default_fallback_profile(handle)
        self._clock = clock

    @property
    def projects(self) -> list[Project]:
        return list(self._projects)

    @property
    def cache(self) -> Optional[GitHubCacheStore]:
        return self._cache

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def assemble(self, bundle: UpstreamBundle) -> AggregateResult:
        """Build the live aggregate from a settled bundle. Raises UpstreamUnavailable on required failure."""
        if not bundle.required_ok:
            failed = [
                f"{name}={res.status_code or res.error}"
                for name, res in (("user", bundle.user), ("repos", bundle.repos))
                if not res.ok
            ]
            raise UpstreamUnavailable(", ".join(failed))
        if not bundle.events.ok:
            logger.info("github_events_degraded handle=%s status=%s", self.handle, bundle.events.status_code)

        user = UserProfile.model_validate(bundle.user.data)
        all_repos = _parse_repos(bundle.repos.data)
        events = _parse_events(bundle.event_rows)
        return AggregateResult(
            user=user,
            repos=all_repos[: self._repo_display_count],
            project_repos=build_project_repos(self._projects, all_repos),
            events=events,
            activity=count_activity(events),
            timestamp=self._now_ms(),
            provenance=Provenance.LIVE,
        )

    async def _live(self) -> AggregateResult:
        bundle = await self._client.fetch_bundle(
            self.handle,
            repo_page_size=self._repo_page_size,
            event_page_size=self._events_page_size,
        )
        return self.assemble(bundle)

    def _from_cache(self) -> Optional[AggregateResult]:
        if self._cache is None:
            return None
        try:
            cached = self._cache.read()
        except Exception:
            logger.warning("github_cache_read_failed", exc_info=True)
            return None
        if cached is None:
            return None
        return cached.model_copy(update={"provenance": Provenance.CACHE})

    def _write_through(self, result: AggregateResult) -> None:
        if self._cache is None:
            return
        try:
            self._cache.write(result)
        except Exception:
            logger.warning("github_cache_write_failed", exc_info=True)

    def fallback(self) -> AggregateResult:
        return AggregateResult(
            user=self._fallback_profile,
            repos=[],
            project_repos={project.repo: None for project in self._projects},
            events=[],
            activity=ActivityCounts(),
            timestamp=self._now_ms(),
            provenance=Provenance.FALLBACK,
        )

    async def get_data(self) -> AggregateResult:
        try:
            result = await self._live()
        except UpstreamUnavailable as exc:
            logger.warning("github_upstream_unavailable handle=%s failed=%s", self.handle, exc)
        except Exception:
            logger.warning("github_live_fetch_failed handle=%s", self.handle, exc_info=True)
        else:
            self._write_through(result)
            return result

        cached = self._from_cache()
        if cached is not None:
            logger.info("github_serving_cache handle=%s cached_at_ms=%s", self.handle, cached.timestamp)
            return cached

        logger.warning("github_serving_fallback handle=%s", self.handle)
        return self.fallback()

    async def get_showcase(self) -> ProjectShowcase:
        data = await self.get_data()
        return ProjectShowcase(
            provenance=data.provenance,
            projects=resolve_projects(self._projects, data.project_repos),
        )
