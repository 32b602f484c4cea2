"""Permission cache port - memoized effective sets and decisions."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from permengine.domain.value_objects import ReasonCode


@dataclass(frozen=True)
class CachedEffective:
    """Cached effective set plus the explicitly denied names it was built with."""

    permissions: frozenset[str]
    denied: frozenset[str]
    version: str


@dataclass(frozen=True)
class CachedDecision:
    """Raw authorization outcome for one (user, permission) pair."""

    authorized: bool
    reason_code: ReasonCode
    reason: str
    inherited_from: str | None = None


class PermissionCache(Protocol):
    """Port for the permission cache.

    Every write carries the version token read via current_version() before
    the data was loaded. invalidate() and invalidate_all() advance the
    version, so a write that raced an invalidation is discarded instead of
    resurrecting revoked permissions. Reads only return entries written
    under the current version.
    """

    async def current_version(self, user_id: UUID) -> str: ...

    async def get_effective(self, user_id: UUID) -> CachedEffective | None: ...

    async def set_effective(
        self,
        user_id: UUID,
        permissions: frozenset[str],
        denied: frozenset[str],
        ttl_seconds: int,
        version: str,
    ) -> bool:
        """Store the set; False when the version is stale and the write was dropped."""
        ...

    async def get_decision(
        self, user_id: UUID, permission: str, version: str
    ) -> CachedDecision | None: ...

    async def set_decision(
        self,
        user_id: UUID,
        permission: str,
        decision: CachedDecision,
        ttl_seconds: int,
        version: str,
    ) -> bool: ...

    async def invalidate(self, user_id: UUID) -> None: ...

    async def invalidate_all(self) -> None: ...
