"""Redis-backed permission cache (redis.asyncio).

Key layout under the configured prefix:
    {prefix}:gen               global generation, bumped by invalidate_all
    {prefix}:ver:{user}        per-user version, bumped by invalidate
    {prefix}:eff:{user}        JSON effective set tagged with its version
    {prefix}:dec:{user}:{perm} JSON decision tagged with its version

Entries written under an older version are never served; they age out
through their TTL. Writes use WATCH/MULTI on both version keys so a write
that races an invalidation is discarded.
"""

import json
import logging
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import WatchError

from permengine.application.ports import CachedDecision, CachedEffective
from permengine.domain.value_objects import ReasonCode

logger = logging.getLogger(__name__)


def create_redis_client(url: str) -> redis.Redis:
    """Create an async Redis client that returns str values."""
    return redis.from_url(url, encoding="utf-8", decode_responses=True)


class RedisPermissionCache:
    """Shared permission cache for multi-process deployments."""

    def __init__(self, client: redis.Redis, prefix: str = "permengine") -> None:
        self._redis = client
        self._prefix = prefix

    def _generation_key(self) -> str:
        return f"{self._prefix}:gen"

    def _version_key(self, user_id: UUID) -> str:
        return f"{self._prefix}:ver:{user_id}"

    def _effective_key(self, user_id: UUID) -> str:
        return f"{self._prefix}:eff:{user_id}"

    def _decision_key(self, user_id: UUID, permission: str) -> str:
        return f"{self._prefix}:dec:{user_id}:{permission}"

    @staticmethod
    def _token(generation: str | None, user_version: str | None) -> str:
        return f"{generation or 0}:{user_version or 0}"

    async def current_version(self, user_id: UUID) -> str:
        generation, user_version = await self._redis.mget(
            self._generation_key(), self._version_key(user_id)
        )
        return self._token(generation, user_version)

    async def get_effective(self, user_id: UUID) -> CachedEffective | None:
        generation, user_version, raw = await self._redis.mget(
            self._generation_key(), self._version_key(user_id), self._effective_key(user_id)
        )
        if raw is None:
            return None
        data = json.loads(raw)
        if data["version"] != self._token(generation, user_version):
            return None
        return CachedEffective(
            permissions=frozenset(data["permissions"]),
            denied=frozenset(data["denied"]),
            version=data["version"],
        )

    async def set_effective(
        self,
        user_id: UUID,
        permissions: frozenset[str],
        denied: frozenset[str],
        ttl_seconds: int,
        version: str,
    ) -> bool:
        payload = json.dumps(
            {"permissions": sorted(permissions), "denied": sorted(denied), "version": version}
        )
        return await self._set_if_current(
            user_id, self._effective_key(user_id), payload, ttl_seconds, version
        )

    async def get_decision(
        self, user_id: UUID, permission: str, version: str
    ) -> CachedDecision | None:
        generation, user_version, raw = await self._redis.mget(
            self._generation_key(),
            self._version_key(user_id),
            self._decision_key(user_id, permission),
        )
        if raw is None:
            return None
        data = json.loads(raw)
        current = self._token(generation, user_version)
        if data["version"] != current or version != current:
            return None
        return CachedDecision(
            authorized=data["authorized"],
            reason_code=ReasonCode(data["reason_code"]),
            reason=data["reason"],
            inherited_from=data.get("inherited_from"),
        )

    async def set_decision(
        self,
        user_id: UUID,
        permission: str,
        decision: CachedDecision,
        ttl_seconds: int,
        version: str,
    ) -> bool:
        payload = json.dumps(
            {
                "authorized": decision.authorized,
                "reason_code": str(decision.reason_code),
                "reason": decision.reason,
                "inherited_from": decision.inherited_from,
                "version": version,
            }
        )
        return await self._set_if_current(
            user_id, self._decision_key(user_id, permission), payload, ttl_seconds, version
        )

    async def invalidate(self, user_id: UUID) -> None:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(self._version_key(user_id))
            pipe.delete(self._effective_key(user_id))
            await pipe.execute()

    async def invalidate_all(self) -> None:
        await self._redis.incr(self._generation_key())

    async def _set_if_current(
        self, user_id: UUID, key: str, payload: str, ttl_seconds: int, version: str
    ) -> bool:
        generation_key = self._generation_key()
        version_key = self._version_key(user_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(generation_key, version_key)
                generation, user_version = await pipe.mget(generation_key, version_key)
                if self._token(generation, user_version) != version:
                    logger.debug("Dropping stale cache write %s (version %s)", key, version)
                    return False
                pipe.multi()
                pipe.set(key, payload, ex=ttl_seconds)
                await pipe.execute()
                return True
            except WatchError:
                logger.debug("Cache write %s raced an invalidation", key)
                return False
