"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_ENV_KEYS = (
    "GITHUB_HANDLE",
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITHUB_API_BASE_URL",
    "GITHUB_TIMEOUT_SECONDS",
    "GITHUB_REPO_PAGE_SIZE",
    "GITHUB_REPO_DISPLAY_COUNT",
    "GITHUB_EVENTS_PAGE_SIZE",
    "GITHUB_CACHE_ENABLED",
    "GITHUB_CACHE_BACKEND",
    "GITHUB_CACHE_PATH",
    "GITHUB_CACHE_TTL_SECONDS",
    "PORTFOLIO_PROJECTS_PATH",
)


class FakeClock:
    """Settable epoch-seconds clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_github_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    # Keep tokens from the developer shell out of tests and keep cache files in tmp.
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("GITHUB_CACHE_PATH", str(tmp_path / "cache" / "github_cache.json"))

    from app.main import app, build_github_service

    previous = getattr(app.state, "github_service", None)
    app.state.github_service = build_github_service()
    yield
    app.state.github_service = previous
