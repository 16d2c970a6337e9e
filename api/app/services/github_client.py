"""GitHub API client for the portfolio endpoint.

Async REST wrapper with:
- optional bearer token auth (resolved by the caller from config)
- one attempt per call, bounded end to end by the timeout, no retries
- tagged results instead of exceptions so callers decide required vs best-effort
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamResult:
    """Outcome of a single upstream call. ``ok`` is true only for a 2xx with a JSON body."""

    ok: bool
    data: Any = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "UpstreamResult":
        return cls(ok=False, status_code=status_code, error=error)


@dataclass(frozen=True)
class UpstreamBundle:
    user: UpstreamResult
    repos: UpstreamResult
    events: UpstreamResult = field(default_factory=lambda: UpstreamResult(ok=True, data=[]))

    @property
    def required_ok(self) -> bool:
        return self.user.ok and self.repos.ok

    @property
    def event_rows(self) -> list[dict]:
        # Activity is best-effort: any failure degrades to no events.
        if not self.events.ok or not isinstance(self.events.data, list):
            return []
        return [row for row in self.events.data if isinstance(row, dict)]


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        user_agent: str = "portfolio-api/1.0",
        timeout: float = 10.0,
    ) -> None:
        self._token = (token or "").strip() or None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def _log_rate_limit_if_exhausted(self, r: httpx.Response) -> None:
        remaining = r.headers.get("X-RateLimit-Remaining")
        reset = r.headers.get("X-RateLimit-Reset")
        try:
            rem_i = int(remaining) if remaining is not None else None
            reset_i = int(reset) if reset is not None else None
        except ValueError:
            rem_i, reset_i = None, None

        if rem_i == 0:
            wait_s = max(0, reset_i - int(time.time())) if reset_i else None
            logger.warning(
                "github_rate_limit_exhausted authenticated=%s reset_in_s=%s",
                self.authenticated,
                wait_s,
            )

    async def get_json(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> UpstreamResult:
        """GET JSON for a path or full URL. Never raises for HTTP or transport failures."""
        url = path if path.startswith("http") else f"{self._base_url}{path}"
        try:
            r = await asyncio.wait_for(client.get(url, params=params), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("github_request_timed_out url=%s timeout_s=%s", url, self._timeout)
            return UpstreamResult.failure(f"Timeout: no complete response within {self._timeout}s")
        except httpx.HTTPError as exc:
            logger.warning("github_request_failed url=%s error=%s", url, exc.__class__.__name__)
            return UpstreamResult.failure(f"{exc.__class__.__name__}: {exc}")

        self._log_rate_limit_if_exhausted(r)
        if r.status_code >= 300:
            logger.warning("github_request_non_2xx url=%s status=%s", url, r.status_code)
            return UpstreamResult.failure(
                f"GitHub API error {r.status_code} for {url}: {r.text[:200]}",
                status_code=r.status_code,
            )
        try:
            data = r.json()
        except ValueError:
            return UpstreamResult.failure(f"GitHub API returned non-JSON body for {url}", r.status_code)
        return UpstreamResult(ok=True, data=data, status_code=r.status_code)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, headers=self._headers)

    async def get_user(self, client: httpx.AsyncClient, handle: str) -> UpstreamResult:
        result = await self.get_json(client, f"/users/{handle}")
        if result.ok and not isinstance(result.data, dict):
            return UpstreamResult.failure("unexpected user payload", result.status_code)
        return result

    async def list_repos(self, client: httpx.AsyncClient, handle: str, per_page: int = 100) -> UpstreamResult:
        """Repositories ordered most-recently-updated first (single page)."""
        result = await self.get_json(
            client,
            f"/users/{handle}/repos",
            params={"sort": "updated", "per_page": per_page},
        )
        if result.ok and not isinstance(result.data, list):
            return UpstreamResult.failure("unexpected repos payload", result.status_code)
        return result

    async def list_public_events(self, client: httpx.AsyncClient, handle: str, per_page: int = 30) -> UpstreamResult:
        result = await self.get_json(
            client,
            f"/users/{handle}/events/public",
            params={"per_page": per_page},
        )
        if result.ok and not isinstance(result.data, list):
            return UpstreamResult.failure("unexpected events payload", result.status_code)
        return result

    async def fetch_bundle(
        self,
        handle: str,
        repo_page_size: int = 100,
        event_page_size: int = 30,
    ) -> UpstreamBundle:
        """Fetch profile, repos and public events concurrently; wait for all three to settle."""
        async with self._client() as client:
            user, repos, events = await asyncio.gather(
                self.get_user(client, handle),
                self.list_repos(client, handle, per_page=repo_page_size),
                self.list_public_events(client, handle, per_page=event_page_size),
            )
        return UpstreamBundle(user=user, repos=repos, events=events)
