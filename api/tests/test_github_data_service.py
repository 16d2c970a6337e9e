"""Tests for GitHub aggregation: project cross-reference, activity counts, and the
Live -> Cache -> Fallback chain."""

from __future__ import annotations

import random

import pytest

from app.models.github import (
    ActivityEvent,
    EventKind,
    Project,
    Provenance,
    RepositorySummary,
)
from app.services.github_cache import FileGitHubCache, InMemoryGitHubCache
from app.services.github_client import UpstreamBundle, UpstreamResult
from app.services.github_data_service import (
    GitHubDataService,
    build_project_repos,
    count_activity,
    default_fallback_profile,
    resolve_projects,
)

USER = {
    "login": "lou-16",
    "name": "Gurnoor Singh",
    "avatar_url": "https://avatars.githubusercontent.com/u/1",
    "bio": None,
    "public_repos": 21,
    "followers": 7,
    "following": 4,
    "html_url": "https://github.com/lou-16",
}

REPO_NAMES = ["krnl", "cassie", "fsprintf", "dotfiles", "notes", "site", "old-thing"]

PROJECTS = [
    Project(repo="lou-16/krnl", featured=True, custom_description="A WIP kernel.", tags=["C"]),
    Project(repo="lou-16/missing-repo", demo_url="https://example.com"),
]


def _repo_rows(names=REPO_NAMES):
    return [
        {
            "full_name": f"lou-16/{name}",
            "name": name,
            "description": f"{name} description",
            "language": "C",
            "stargazers_count": i,
            "forks_count": 0,
            "html_url": f"https://github.com/lou-16/{name}",
            "topics": None,
        }
        for i, name in enumerate(names)
    ]


def _events(push=0, prs=0, issues=0, other=0):
    rows = (
        [{"id": f"p{i}", "type": "PushEvent", "repo": {"name": "lou-16/krnl"}} for i in range(push)]
        + [{"id": f"r{i}", "type": "PullRequestEvent"} for i in range(prs)]
        + [{"id": f"i{i}", "type": "IssuesEvent"} for i in range(issues)]
        + [{"id": f"o{i}", "type": "WatchEvent"} for i in range(other)]
    )
    return rows


def _ok(data):
    return UpstreamResult(ok=True, data=data, status_code=200)


def _fail(status=500):
    return UpstreamResult.failure(f"GitHub API error {status}", status_code=status)


class FakeClient:
    def __init__(self, bundle=None, exc=None):
        self.bundle = bundle
        self.exc = exc
        self.calls = []

    async def fetch_bundle(self, handle, repo_page_size=100, event_page_size=30):
        self.calls.append((handle, repo_page_size, event_page_size))
        if self.exc is not None:
            raise self.exc
        return self.bundle


def _live_bundle(events=None):
    return UpstreamBundle(
        user=_ok(USER),
        repos=_ok(_repo_rows()),
        events=_ok(events if events is not None else _events(push=3, prs=2, issues=1, other=4)),
    )


def _failed_bundle():
    return UpstreamBundle(user=_fail(), repos=_fail(), events=_fail())


def _service(client, cache=None, clock=None, **kwargs):
    extra = {"clock": clock} if clock is not None else {}
    return GitHubDataService(
        handle="lou-16",
        client=client,
        projects=PROJECTS,
        cache=cache,
        **extra,
        **kwargs,
    )


# --- project cross-reference ---


def test_build_project_repos_resolves_present_and_nulls_missing():
    repos = [RepositorySummary.model_validate(r) for r in _repo_rows(REPO_NAMES[:6])]

    mapping = build_project_repos(PROJECTS, repos)

    assert list(mapping) == ["lou-16/krnl", "lou-16/missing-repo"]
    assert mapping["lou-16/krnl"] == repos[0]
    assert mapping["lou-16/missing-repo"] is None


def test_build_project_repos_one_key_per_project_even_with_duplicates():
    projects = PROJECTS + [Project(repo="lou-16/krnl")]
    mapping = build_project_repos(projects, [])

    assert sorted(mapping) == ["lou-16/krnl", "lou-16/missing-repo"]
    assert all(value is None for value in mapping.values())


def test_build_project_repos_matches_case_insensitively_keeping_declared_key():
    repos = [RepositorySummary(full_name="lou-16/prabhaavField", name="prabhaavField")]

    mapping = build_project_repos([Project(repo="LOU-16/prabhaavfield")], repos)

    assert mapping == {"LOU-16/prabhaavfield": repos[0]}


# --- activity ---


def test_count_activity_matches_kinds_regardless_of_order():
    events = [ActivityEvent.from_github(row) for row in _events(push=5, prs=3, issues=2, other=7)]
    expected = count_activity(events)

    shuffled = list(events)
    random.Random(7).shuffle(shuffled)

    assert (expected.commits, expected.prs, expected.issues) == (5, 3, 2)
    assert count_activity(shuffled) == expected


def test_activity_event_from_github_classifies_kind():
    event = ActivityEvent.from_github({"id": 12, "type": "PushEvent", "repo": {"name": "lou-16/krnl"}})
    unknown = ActivityEvent.from_github({"type": "ForkEvent"})

    assert event.id == "12"
    assert event.kind == EventKind.PUSH
    assert event.repo == "lou-16/krnl"
    assert unknown.kind == EventKind.OTHER


# --- live path ---


@pytest.mark.asyncio
async def test_live_fetch_returns_live_and_writes_cache(clock):
    cache = InMemoryGitHubCache(clock=clock)
    client = FakeClient(bundle=_live_bundle())
    service = _service(client, cache=cache, clock=clock)

    result = await service.get_data()

    assert result.provenance == Provenance.LIVE
    assert result.user.login == "lou-16"
    assert result.user.bio == ""
    assert [r.name for r in result.repos] == REPO_NAMES[:6]
    assert result.project_repos["lou-16/krnl"].full_name == "lou-16/krnl"
    assert result.project_repos["lou-16/missing-repo"] is None
    assert (result.activity.commits, result.activity.prs, result.activity.issues) == (3, 2, 1)
    assert len(result.events) == 10
    assert result.timestamp == int(clock.now * 1000)
    assert cache.read() == result
    assert client.calls == [("lou-16", 100, 30)]


@pytest.mark.asyncio
async def test_project_beyond_display_count_still_resolves(clock):
    projects = [Project(repo="lou-16/old-thing")]
    service = GitHubDataService("lou-16", FakeClient(bundle=_live_bundle()), projects, clock=clock)

    result = await service.get_data()

    assert len(result.repos) == 6
    assert result.project_repos["lou-16/old-thing"] is not None


@pytest.mark.asyncio
async def test_events_failure_degrades_to_empty_activity(clock):
    bundle = UpstreamBundle(user=_ok(USER), repos=_ok(_repo_rows()), events=_fail(503))
    service = _service(FakeClient(bundle=bundle), clock=clock)

    result = await service.get_data()

    assert result.provenance == Provenance.LIVE
    assert result.events == []
    assert result.activity.commits == 0


# --- failure paths ---


@pytest.mark.asyncio
async def test_upstream_500_with_fresh_cache_serves_cache(clock):
    cache = InMemoryGitHubCache(ttl_seconds=3600, clock=clock)
    await _service(FakeClient(bundle=_live_bundle()), cache=cache, clock=clock).get_data()
    stored = cache.read()

    clock.advance(10 * 60)
    result = await _service(FakeClient(bundle=_failed_bundle()), cache=cache, clock=clock).get_data()

    assert result.provenance == Provenance.CACHE
    assert result.from_cache
    assert result.model_dump(exclude={"provenance"}) == stored.model_dump(exclude={"provenance"})


@pytest.mark.asyncio
async def test_sparse_user_survives_file_cache_unchanged(tmp_path, clock):
    # GitHub omits name/bio entirely for some accounts.
    sparse = {"login": "lou-16", "public_repos": 1}
    cache = FileGitHubCache(tmp_path / "github_cache.json", ttl_seconds=3600, clock=clock)
    bundle = UpstreamBundle(user=_ok(sparse), repos=_ok(_repo_rows()), events=_ok([]))
    live = await _service(FakeClient(bundle=bundle), cache=cache, clock=clock).get_data()

    clock.advance(10 * 60)
    cached = await _service(FakeClient(bundle=_failed_bundle()), cache=cache, clock=clock).get_data()

    assert live.user.name == ""
    assert live.user.bio == ""
    assert cached.provenance == Provenance.CACHE
    assert cached.user == live.user
    assert cached.model_dump(exclude={"provenance"}) == live.model_dump(exclude={"provenance"})


@pytest.mark.asyncio
async def test_upstream_failure_with_expired_cache_serves_fallback(clock):
    cache = InMemoryGitHubCache(ttl_seconds=3600, clock=clock)
    await _service(FakeClient(bundle=_live_bundle()), cache=cache, clock=clock).get_data()

    clock.advance(90 * 60)
    service = _service(FakeClient(bundle=_failed_bundle()), cache=cache, clock=clock)
    result = await service.get_data()

    assert result.provenance == Provenance.FALLBACK
    assert result.from_fallback
    assert result == service.fallback()


@pytest.mark.asyncio
async def test_fallback_without_cache_layer(clock):
    service = _service(FakeClient(bundle=_failed_bundle()), cache=None, clock=clock)

    result = await service.get_data()

    assert result.provenance == Provenance.FALLBACK
    assert result.user == default_fallback_profile("lou-16")
    assert result.user.name == "Gurnoor Singh"
    assert result.repos == []
    assert result.events == []
    assert result.project_repos == {"lou-16/krnl": None, "lou-16/missing-repo": None}


@pytest.mark.asyncio
async def test_only_one_required_call_failing_is_enough_to_fall_back(clock):
    bundle = UpstreamBundle(user=_ok(USER), repos=_fail(404), events=_ok([]))
    cache = InMemoryGitHubCache(clock=clock)

    result = await _service(FakeClient(bundle=bundle), cache=cache, clock=clock).get_data()

    assert result.provenance == Provenance.FALLBACK
    assert cache.read() is None


@pytest.mark.asyncio
async def test_unexpected_exception_never_escapes(clock):
    service = _service(FakeClient(exc=RuntimeError("socket exploded")), clock=clock)

    result = await service.get_data()

    assert result.provenance == Provenance.FALLBACK


@pytest.mark.asyncio
async def test_malformed_user_payload_falls_back(clock):
    bundle = UpstreamBundle(user=_ok({"name": "no login"}), repos=_ok(_repo_rows()), events=_ok([]))

    result = await _service(FakeClient(bundle=bundle), clock=clock).get_data()

    assert result.provenance == Provenance.FALLBACK


class _BrokenCache:
    def read(self):
        raise OSError("disk gone")

    def write(self, result):
        raise OSError("disk gone")


@pytest.mark.asyncio
async def test_broken_cache_never_aborts_request(clock):
    live = await _service(FakeClient(bundle=_live_bundle()), cache=_BrokenCache(), clock=clock).get_data()
    failed = await _service(FakeClient(bundle=_failed_bundle()), cache=_BrokenCache(), clock=clock).get_data()

    assert live.provenance == Provenance.LIVE
    assert failed.provenance == Provenance.FALLBACK


# --- construction + showcase ---


def test_service_rejects_blank_handle():
    with pytest.raises(ValueError):
        GitHubDataService("  ", FakeClient(), PROJECTS)


def test_default_fallback_profile_for_unknown_handle():
    profile = default_fallback_profile("someone")

    assert profile.login == "someone"
    assert profile.html_url == "https://github.com/someone"
    assert profile.public_repos == 0


def test_resolve_projects_prefers_custom_description():
    krnl = RepositorySummary(full_name="lou-16/krnl", description="upstream text")
    items = resolve_projects(
        PROJECTS + [Project(repo="lou-16/plain")],
        {"lou-16/krnl": krnl, "lou-16/missing-repo": None, "lou-16/plain": krnl},
    )

    assert [i.available for i in items] == [True, False, True]
    assert items[0].description == "A WIP kernel."
    assert items[1].description is None
    assert items[1].demo_url == "https://example.com"
    assert items[2].description == "upstream text"


@pytest.mark.asyncio
async def test_showcase_carries_provenance(clock):
    service = _service(FakeClient(bundle=_failed_bundle()), clock=clock)

    showcase = await service.get_showcase()

    assert showcase.provenance == Provenance.FALLBACK
    assert [p.repo for p in showcase.projects] == ["lou-16/krnl", "lou-16/missing-repo"]
    assert not any(p.available for p in showcase.projects)
