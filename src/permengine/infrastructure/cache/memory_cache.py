"""Process-local permission cache."""

import logging
import time
from collections.abc import Callable
from uuid import UUID

from permengine.application.ports import CachedDecision, CachedEffective

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class InMemoryPermissionCache:
    """Dict-backed cache with per-user version counters and a global generation.

    Writes happen between awaits on a single event loop, so check-and-set
    needs no lock. Expired entries are swept on write at most once per
    ``sweep_interval_seconds``, or immediately when a map grows past
    ``max_entries``; if a sweep leaves a map still full, its oldest entries
    are evicted.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._clock = clock
        self._max_entries = max_entries
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep = clock() + sweep_interval_seconds
        self._generation = 0
        self._user_versions: dict[UUID, int] = {}
        self._effective: dict[UUID, tuple[CachedEffective, float]] = {}
        self._decisions: dict[tuple[UUID, str], tuple[str, CachedDecision, float]] = {}

    def __len__(self) -> int:
        return len(self._effective) + len(self._decisions)

    def _version(self, user_id: UUID) -> str:
        return f"{self._generation}:{self._user_versions.get(user_id, 0)}"

    async def current_version(self, user_id: UUID) -> str:
        return self._version(user_id)

    async def get_effective(self, user_id: UUID) -> CachedEffective | None:
        entry = self._effective.get(user_id)
        if entry is None:
            return None
        cached, expires_at = entry
        if expires_at <= self._clock() or cached.version != self._version(user_id):
            del self._effective[user_id]
            return None
        return cached

    async def set_effective(
        self,
        user_id: UUID,
        permissions: frozenset[str],
        denied: frozenset[str],
        ttl_seconds: int,
        version: str,
    ) -> bool:
        if version != self._version(user_id):
            logger.debug("Dropping stale effective set for user %s (version %s)", user_id, version)
            return False
        # Re-insert so dict order tracks write recency for eviction
        if self._effective.pop(user_id, None) is None:
            self._make_room(self._effective)
        self._effective[user_id] = (
            CachedEffective(frozenset(permissions), frozenset(denied), version),
            self._clock() + ttl_seconds,
        )
        return True

    async def get_decision(
        self, user_id: UUID, permission: str, version: str
    ) -> CachedDecision | None:
        key = (user_id, permission)
        entry = self._decisions.get(key)
        if entry is None:
            return None
        entry_version, decision, expires_at = entry
        current = self._version(user_id)
        if expires_at <= self._clock() or entry_version != current:
            del self._decisions[key]
            return None
        return decision if version == current else None

    async def set_decision(
        self,
        user_id: UUID,
        permission: str,
        decision: CachedDecision,
        ttl_seconds: int,
        version: str,
    ) -> bool:
        if version != self._version(user_id):
            return False
        key = (user_id, permission)
        if self._decisions.pop(key, None) is None:
            self._make_room(self._decisions)
        self._decisions[key] = (version, decision, self._clock() + ttl_seconds)
        return True

    async def invalidate(self, user_id: UUID) -> None:
        self._user_versions[user_id] = self._user_versions.get(user_id, 0) + 1
        self._effective.pop(user_id, None)
        for key in [k for k in self._decisions if k[0] == user_id]:
            del self._decisions[key]

    async def invalidate_all(self) -> None:
        self._generation += 1
        self._effective.clear()
        self._decisions.clear()

    def _make_room(self, entries: dict) -> None:
        now = self._clock()
        if now >= self._next_sweep or len(entries) >= self._max_entries:
            self._next_sweep = now + self._sweep_interval
            self._sweep(now)
        overflow = len(entries) - self._max_entries + 1
        if overflow > 0:
            for key in list(entries)[:overflow]:
                del entries[key]
            logger.debug("Evicted %d cache entries", overflow)

    def _sweep(self, now: float) -> None:
        expired_effective = [
            user_id
            for user_id, (cached, expires_at) in self._effective.items()
            if expires_at <= now or cached.version != self._version(user_id)
        ]
        for user_id in expired_effective:
            del self._effective[user_id]
        expired_decisions = [
            key
            for key, (version, _, expires_at) in self._decisions.items()
            if expires_at <= now or version != self._version(key[0])
        ]
        for key in expired_decisions:
            del self._decisions[key]

        removed = len(expired_effective) + len(expired_decisions)
        if removed:
            logger.debug("Swept %d expired cache entries", removed)
