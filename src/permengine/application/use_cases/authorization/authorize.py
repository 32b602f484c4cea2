"""Authorization decision engine - single, any, all and bulk checks.

Business outcomes (unknown user, inactive user, missing permission) are
always returned as a denied Decision. Store failures are logged and turned
into an INTERNAL_ERROR denial; they never surface as a grant.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from permengine.application.dto.decision import Decision
from permengine.application.ports import (
    CachedDecision,
    CachedEffective,
    PermissionCache,
    UnitOfWork,
    UnitOfWorkFactory,
)
from permengine.domain.entities import User
from permengine.domain.services import PermissionCatalog, resolve_effective
from permengine.domain.services.hierarchy import DEFAULT_MAX_DEPTH
from permengine.domain.value_objects import DecisionSource, PermissionName, ReasonCode

logger = logging.getLogger(__name__)

INTERNAL_ERROR_REASON = "Internal error during authorization"


def _input_label(value: object) -> str:
    """Printable form of a caller-supplied permission, which may not be a str."""
    if value is None:
        return ""
    return value if isinstance(value, str) else repr(value)


class _Denied(Exception):
    """User-level failure that short-circuits every requested permission."""

    def __init__(self, reason_code: ReasonCode, reason: str) -> None:
        super().__init__(reason)
        self.reason_code = reason_code
        self.reason = reason


@dataclass
class _UserContext:
    """Effective set for one user, held constant for the duration of a call."""

    user: User
    effective: frozenset[str]
    denied: frozenset[str]
    version: str | None
    catalog: PermissionCatalog | None = None


class AuthorizationEngine:
    """Answers "is this user allowed to do X" using cached effective permissions."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        cache: PermissionCache,
        effective_ttl_seconds: int = 900,
        decision_ttl_seconds: int = 600,
        hierarchy_max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._cache = cache
        self._effective_ttl = effective_ttl_seconds
        self._decision_ttl = decision_ttl_seconds
        self._max_depth = hierarchy_max_depth

    async def authorize(self, user_id: UUID, permission: str) -> Decision:
        """Check one permission name, with hierarchical fallback."""
        try:
            name = str(PermissionName.parse(permission))
        except ValueError as e:
            logger.warning("Authorization input rejected for user %s: %s", user_id, e)
            return Decision.denied(
                _input_label(permission), ReasonCode.INVALID_INPUT, f"Invalid input: {e}"
            )

        try:
            async with self._uow_factory() as uow:
                ctx = await self._load_context(uow, user_id)
                decision = await self._decide(uow, ctx, name)
        except _Denied as d:
            logger.info("Authorization failed: user %s, permission %s: %s", user_id, name, d.reason)
            return Decision.denied(name, d.reason_code, d.reason)
        except Exception:
            logger.exception("Error during authorization for user %s and permission %s", user_id, name)
            return Decision.denied(name, ReasonCode.INTERNAL_ERROR, INTERNAL_ERROR_REASON)

        self._log_decision(user_id, decision)
        return decision

    async def authorize_resource_action(self, user_id: UUID, resource: str, action: str) -> Decision:
        """Build "{resource}.{action}" and delegate to authorize()."""
        try:
            name = str(PermissionName.of(resource, action))
        except ValueError as e:
            logger.warning("Authorization input rejected for user %s: %s", user_id, e)
            return Decision.denied("", ReasonCode.INVALID_INPUT, f"Invalid input: {e}")
        return await self.authorize(user_id, name)

    async def authorize_any(self, user_id: UUID, permissions: Iterable[str]) -> Decision:
        """Authorized when at least one requested permission is satisfied."""
        return await self._authorize_many(user_id, permissions, require_all=False)

    async def authorize_all(self, user_id: UUID, permissions: Iterable[str]) -> Decision:
        """Authorized only when every requested permission is satisfied."""
        return await self._authorize_many(user_id, permissions, require_all=True)

    async def bulk_authorize(self, user_id: UUID, permissions: Iterable[str]) -> dict[str, Decision]:
        """Answer each permission independently against one effective set."""
        results: dict[str, Decision] = {}
        # Request key -> normalized name; keys differing only in whitespace share one check
        valid: dict[str, str] = {}
        for raw in permissions or []:
            key = _input_label(raw)
            if key in valid or key in results:
                continue
            try:
                valid[key] = str(PermissionName.parse(raw))
            except ValueError as e:
                results[key] = Decision.denied(key, ReasonCode.INVALID_INPUT, f"Invalid input: {e}")
        if not valid:
            return results
        names = list(dict.fromkeys(valid.values()))
        decided: dict[str, Decision] = {}

        try:
            async with self._uow_factory() as uow:
                ctx = await self._load_context(uow, user_id)
                for name in names:
                    decided[name] = await self._decide(uow, ctx, name)
        except _Denied as d:
            logger.info("Bulk authorization failed for user %s: %s", user_id, d.reason)
            for name in names:
                decided[name] = Decision.denied(name, d.reason_code, d.reason)
        except Exception:
            logger.exception("Error during bulk authorization for user %s", user_id)
            for name in names:
                decided[name] = Decision.denied(name, ReasonCode.INTERNAL_ERROR, INTERNAL_ERROR_REASON)
        for key, name in valid.items():
            results[key] = decided[name]
        return results

    async def get_effective_permissions(self, user_id: UUID) -> frozenset[str]:
        """Effective permission names; empty for unknown or inactive users.

        Store errors propagate.
        """
        async with self._uow_factory() as uow:
            try:
                ctx = await self._load_context(uow, user_id)
            except _Denied:
                return frozenset()
            return ctx.effective

    async def _authorize_many(
        self, user_id: UUID, permissions: Iterable[str], require_all: bool
    ) -> Decision:
        requested = list(permissions or [])
        if not requested:
            logger.warning("Authorization failed: no permissions provided for user %s", user_id)
            return Decision.denied("", ReasonCode.INVALID_INPUT, "Invalid input: no permissions provided")
        try:
            names = list(dict.fromkeys(str(PermissionName.parse(p)) for p in requested))
        except ValueError as e:
            label = ", ".join(_input_label(p) for p in requested)
            logger.warning("Authorization input rejected for user %s: %s", user_id, e)
            return Decision.denied(label, ReasonCode.INVALID_INPUT, f"Invalid input: {e}")
        label = ", ".join(names)

        try:
            async with self._uow_factory() as uow:
                ctx = await self._load_context(uow, user_id)
                decisions = [await self._decide(uow, ctx, name) for name in names]
        except _Denied as d:
            logger.info("Authorization failed: user %s, permissions %s: %s", user_id, label, d.reason)
            return Decision.denied(label, d.reason_code, d.reason)
        except Exception:
            logger.exception("Error during authorization for user %s and permissions %s", user_id, label)
            return Decision.denied(label, ReasonCode.INTERNAL_ERROR, INTERNAL_ERROR_REASON)

        matched = tuple(d.permission for d in decisions if d.authorized)
        missing = tuple(d.permission for d in decisions if not d.authorized)
        inherited = any(d.source == DecisionSource.INHERITANCE for d in decisions if d.authorized)

        if require_all:
            authorized = not missing
            reason = (
                f"User holds all required permissions: {label}"
                if authorized
                else "User is missing the following permissions: " + ", ".join(missing)
            )
        else:
            authorized = bool(matched)
            reason = (
                "Matched: " + ", ".join(matched)
                if authorized
                else f"User does not have any of the required permissions: {label}"
            )

        decision = Decision(
            authorized=authorized,
            permission=label,
            reason_code=(
                (ReasonCode.INHERITED if inherited else ReasonCode.GRANTED)
                if authorized
                else ReasonCode.MISSING_PERMISSION
            ),
            reason=reason,
            effective_permissions=ctx.effective,
            source=(
                (DecisionSource.INHERITANCE if inherited else DecisionSource.DIRECT)
                if authorized
                else DecisionSource.NONE
            ),
            matched=matched,
            missing=missing,
        )
        self._log_decision(user_id, decision)
        return decision

    async def _load_context(self, uow: UnitOfWork, user_id: UUID) -> _UserContext:
        user = await uow.users.get_by_id(user_id)
        if user is None:
            raise _Denied(ReasonCode.USER_NOT_FOUND, "User not found")
        if not user.is_active:
            raise _Denied(ReasonCode.USER_INACTIVE, "User account is not active")

        version = await self._cache_version(user_id)
        if version is not None:
            cached = await self._cache_get_effective(user_id)
            if cached is not None and cached.version == version:
                return _UserContext(user, cached.permissions, cached.denied, version)

        snapshot = await uow.users.get_with_roles_and_overrides(user_id)
        if snapshot is None:
            raise _Denied(ReasonCode.USER_NOT_FOUND, "User not found")
        if not snapshot.user.is_active:
            raise _Denied(ReasonCode.USER_INACTIVE, "User account is not active")
        catalog = PermissionCatalog(await uow.permissions.list_all(), max_depth=self._max_depth)
        breakdown = resolve_effective(snapshot.user, snapshot.roles, catalog, snapshot.overrides)

        # Only a fully computed set reaches the cache
        if version is not None:
            await self._cache_set_effective(user_id, breakdown.effective, breakdown.denies, version)
        return _UserContext(snapshot.user, breakdown.effective, breakdown.denies, version, catalog)

    async def _decide(self, uow: UnitOfWork, ctx: _UserContext, name: str) -> Decision:
        cached = None
        if ctx.version is not None:
            cached = await self._cache_get_decision(ctx.user.id, name, ctx.version)
        if cached is None:
            if ctx.catalog is None:
                ctx.catalog = PermissionCatalog(
                    await uow.permissions.list_all(), max_depth=self._max_depth
                )
            cached = self._evaluate(ctx, name)
            # Unknown names are not cached; the key space is caller-controlled
            if ctx.version is not None and cached.reason_code != ReasonCode.PERMISSION_NOT_FOUND:
                await self._cache_set_decision(ctx.user.id, name, cached, ctx.version)
        return self._to_decision(ctx, name, cached)

    @staticmethod
    def _evaluate(ctx: _UserContext, name: str) -> CachedDecision:
        if name in ctx.effective:
            return CachedDecision(True, ReasonCode.GRANTED, f"Permission '{name}' is held directly")
        if name in ctx.denied:
            return CachedDecision(
                False, ReasonCode.MISSING_PERMISSION, f"Permission '{name}' is explicitly denied"
            )

        permission = ctx.catalog.find_by_name(name)
        if permission is None:
            return CachedDecision(False, ReasonCode.PERMISSION_NOT_FOUND, f"No such permission '{name}'")
        if not permission.is_active:
            return CachedDecision(
                False, ReasonCode.PERMISSION_NOT_FOUND, f"Permission '{name}' is not active"
            )

        for ancestor in ctx.catalog.resolve_ancestors(permission):
            if ancestor.name in ctx.effective:
                return CachedDecision(
                    True,
                    ReasonCode.INHERITED,
                    f"Granted through hierarchical fallback via parent permission '{ancestor.name}'",
                    inherited_from=ancestor.name,
                )
        return CachedDecision(False, ReasonCode.MISSING_PERMISSION, f"Missing permission '{name}'")

    @staticmethod
    def _to_decision(ctx: _UserContext, name: str, cached: CachedDecision) -> Decision:
        if cached.authorized:
            source = (
                DecisionSource.INHERITANCE
                if cached.reason_code == ReasonCode.INHERITED
                else DecisionSource.DIRECT
            )
        else:
            source = DecisionSource.NONE
        return Decision(
            authorized=cached.authorized,
            permission=name,
            reason_code=cached.reason_code,
            reason=cached.reason,
            effective_permissions=ctx.effective,
            source=source,
            inherited_from=cached.inherited_from,
            matched=(name,) if cached.authorized else (),
            missing=() if cached.authorized else (name,),
        )

    @staticmethod
    def _log_decision(user_id: UUID, decision: Decision) -> None:
        if decision.authorized:
            logger.debug(
                "Authorization successful: user %s has %s (%s)",
                user_id,
                decision.permission,
                decision.reason,
            )
        else:
            logger.info(
                "Authorization failed: user %s, permission %s: %s",
                user_id,
                decision.permission,
                decision.reason,
            )

    # Cache access degrades to a recompute; it never decides on its own.

    async def _cache_version(self, user_id: UUID) -> str | None:
        try:
            return await self._cache.current_version(user_id)
        except Exception:
            logger.warning("Permission cache unavailable for user %s", user_id, exc_info=True)
            return None

    async def _cache_get_effective(self, user_id: UUID) -> CachedEffective | None:
        try:
            return await self._cache.get_effective(user_id)
        except Exception:
            logger.warning("Failed to read cached permissions for user %s", user_id, exc_info=True)
            return None

    async def _cache_set_effective(
        self, user_id: UUID, effective: frozenset[str], denied: frozenset[str], version: str
    ) -> None:
        try:
            stored = await self._cache.set_effective(
                user_id, effective, denied, self._effective_ttl, version
            )
        except Exception:
            logger.warning("Failed to cache permissions for user %s", user_id, exc_info=True)
            return
        if not stored:
            logger.debug("Discarded stale permission cache write for user %s", user_id)

    async def _cache_get_decision(
        self, user_id: UUID, name: str, version: str
    ) -> CachedDecision | None:
        try:
            return await self._cache.get_decision(user_id, name, version)
        except Exception:
            logger.warning("Failed to read cached decision for user %s", user_id, exc_info=True)
            return None

    async def _cache_set_decision(
        self, user_id: UUID, name: str, decision: CachedDecision, version: str
    ) -> None:
        try:
            await self._cache.set_decision(user_id, name, decision, self._decision_ttl, version)
        except Exception:
            logger.warning("Failed to cache decision for user %s", user_id, exc_info=True)
