"""Cache abstractions for collaborator results."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from nutrition_ledger.domain.estimates import CoachAdvice


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _CacheEntry:
    value: object
    expires_at: datetime


@dataclass
class InMemoryCache(Cache):
    """Process-local TTL cache."""

    clock: Callable[[], datetime] = _utc_now
    _entries: dict[str, _CacheEntry] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL."""
        expires_at = self.clock() + timedelta(seconds=ttl_seconds)
        self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)


@dataclass(frozen=True)
class AdviceKey:
    """Expiry key of a cached advice: the local day and profile version."""

    day: str
    profile_version: int


@dataclass
class DailyAdviceCache:
    """One coach advice per owner, valid for a local day and profile version.

    A lookup with a different day or profile version misses and drops the
    stale entry.
    """

    _entries: dict[UUID, tuple[AdviceKey, CoachAdvice]] = field(default_factory=dict)

    def get(self, owner_id: UUID, key: AdviceKey) -> CoachAdvice | None:
        """Return the advice cached under ``key``, if still valid."""
        cached = self._entries.get(owner_id)
        if cached is None:
            return None
        cached_key, advice = cached
        if cached_key != key:
            self._entries.pop(owner_id, None)
            return None
        return advice

    def put(self, owner_id: UUID, key: AdviceKey, advice: CoachAdvice) -> None:
        """Store the advice for ``key``, replacing any older entry."""
        self._entries[owner_id] = (key, advice)
