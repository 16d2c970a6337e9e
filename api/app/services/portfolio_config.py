"""Environment-driven settings for the portfolio GitHub endpoint."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

DEFAULT_GITHUB_HANDLE = "lou-16"
DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_CACHE_TTL_SECONDS = 3600
DEFAULT_REPO_DISPLAY_COUNT = 6
DEFAULT_REPO_PAGE_SIZE = 100
DEFAULT_EVENTS_PAGE_SIZE = 30


def _truthy(raw: str | None) -> bool:
    if raw is None:
        return False
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _bounded_int(name: str, default: int, low: int, high: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return max(low, min(value, high))


def github_handle() -> str:
    return (os.getenv("GITHUB_HANDLE") or "").strip() or DEFAULT_GITHUB_HANDLE


def github_token() -> Optional[str]:
    token = os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
    if token:
        token = token.strip() or None
    return token


def github_api_base_url() -> str:
    return (os.getenv("GITHUB_API_BASE_URL") or "").strip() or DEFAULT_API_BASE_URL


def github_timeout_seconds() -> float:
    raw = (os.getenv("GITHUB_TIMEOUT_SECONDS") or "10").strip()
    try:
        return max(1.0, min(float(raw), 60.0))
    except ValueError:
        return 10.0


def repo_page_size() -> int:
    return _bounded_int("GITHUB_REPO_PAGE_SIZE", DEFAULT_REPO_PAGE_SIZE, 1, 100)


def repo_display_count() -> int:
    return _bounded_int("GITHUB_REPO_DISPLAY_COUNT", DEFAULT_REPO_DISPLAY_COUNT, 0, 100)


def events_page_size() -> int:
    return _bounded_int("GITHUB_EVENTS_PAGE_SIZE", DEFAULT_EVENTS_PAGE_SIZE, 1, 100)


def cache_enabled() -> bool:
    raw = os.getenv("GITHUB_CACHE_ENABLED")
    if raw is None:
        return True
    return _truthy(raw)


def cache_backend() -> str:
    raw = (os.getenv("GITHUB_CACHE_BACKEND") or "file").strip().lower()
    return raw if raw in {"file", "memory"} else "file"


def cache_ttl_seconds() -> int:
    return _bounded_int("GITHUB_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS, 1, 7 * 86400)


def _default_cache_path() -> Path:
    return Path(__file__).resolve().parents[2] / "logs" / "github_cache.json"


def cache_file_path() -> Path:
    configured = os.getenv("GITHUB_CACHE_PATH")
    return Path(configured) if configured else _default_cache_path()


def projects_file_path() -> Optional[Path]:
    configured = (os.getenv("PORTFOLIO_PROJECTS_PATH") or "").strip()
    return Path(configured) if configured else None
