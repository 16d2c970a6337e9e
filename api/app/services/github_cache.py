"""TTL-gated store for the last successful GitHub aggregate.

Read only on the failure path, written only after a fully successful fetch.
Every storage problem (missing, expired, corrupt, unwritable) behaves as "no cache".
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional, Protocol

from pydantic import ValidationError

from app.models.github import AggregateResult, CacheEntry

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1
DEFAULT_TTL_SECONDS = 3600

Clock = Callable[[], float]


class GitHubCacheStore(Protocol):
    """Protocol for the aggregate cache. Implementations: FileGitHubCache, InMemoryGitHubCache."""

    def read(self) -> Optional[AggregateResult]:
        ...

    def write(self, result: AggregateResult) -> None:
        ...


def _is_fresh(written_at: float, now: float, ttl_seconds: float) -> bool:
    age = now - written_at
    return 0 <= age < ttl_seconds


class FileGitHubCache:
    """One JSON document on disk: {version, written_at, result}."""

    def __init__(
        self,
        path: Path | str,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = time.time,
    ) -> None:
        self._path = Path(path)
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock

    def read(self) -> Optional[AggregateResult]:
        try:
            if not self._path.is_file():
                return None
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            entry = CacheEntry.model_validate(payload)
        except (OSError, ValueError, ValidationError):
            logger.warning("github_cache_unreadable path=%s", self._path, exc_info=True)
            return None
        if entry.version != CACHE_FORMAT_VERSION:
            logger.info("github_cache_version_mismatch found=%s expected=%s", entry.version, CACHE_FORMAT_VERSION)
            return None
        if not _is_fresh(entry.written_at, self._clock(), self._ttl_seconds):
            return None
        return entry.result

    def write(self, result: AggregateResult) -> None:
        entry = CacheEntry(version=CACHE_FORMAT_VERSION, written_at=self._clock(), result=result)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(
                json.dumps(entry.model_dump(mode="json", by_alias=True), indent=2),
                encoding="utf-8",
            )
            tmp.replace(self._path)
        except OSError:
            logger.warning("github_cache_write_failed path=%s", self._path, exc_info=True)


class InMemoryGitHubCache:
    """Process-local cache with the same TTL contract. Lost on restart."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Clock = time.time) -> None:
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._lock = threading.Lock()

    def read(self) -> Optional[AggregateResult]:
        with self._lock:
            entry = self._entry
        if entry is None or not _is_fresh(entry.written_at, self._clock(), self._ttl_seconds):
            return None
        return entry.result

    def write(self, result: AggregateResult) -> None:
        entry = CacheEntry(version=CACHE_FORMAT_VERSION, written_at=self._clock(), result=result)
        with self._lock:
            self._entry = entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None
