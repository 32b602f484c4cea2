"""Permission change publishing - cache invalidation then audit.

Every mutating use case reports what it changed as PermissionChange values
after its transaction commits. Invalidation errors propagate to the caller;
audit failures are logged and swallowed.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from uuid import UUID

from permengine.application.ports import AuditSink, PermissionCache, UnitOfWorkFactory
from permengine.domain.entities import PermissionAuditEntry
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionChange:
    """One committed mutation affecting authorization."""

    kind: ChangeKind
    user_id: UUID | None = None
    role_id: UUID | None = None
    permission_id: UUID | None = None
    old_value: str | None = None
    new_value: str | None = None


@dataclass
class _InvalidationPlan:
    user_ids: set[UUID]
    role_ids: set[UUID]
    everything: bool = False


class CacheInvalidator:
    """Maps each change kind to the cache entries it makes stale."""

    def __init__(self, cache: PermissionCache, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._cache = cache
        self._uow_factory = unit_of_work_factory
        user_scoped = self._plan_user
        role_scoped = self._plan_role
        self._planners: dict[ChangeKind, Callable[[PermissionChange, _InvalidationPlan], None]] = {
            ChangeKind.ROLE_PERMISSION_ASSIGNED: role_scoped,
            ChangeKind.ROLE_PERMISSION_REMOVED: role_scoped,
            ChangeKind.ROLE_STATUS_CHANGED: role_scoped,
            ChangeKind.USER_OVERRIDE_CREATED: user_scoped,
            ChangeKind.USER_OVERRIDE_UPDATED: user_scoped,
            ChangeKind.USER_OVERRIDE_REMOVED: user_scoped,
            ChangeKind.USER_ROLE_ASSIGNED: user_scoped,
            ChangeKind.USER_ROLE_REMOVED: user_scoped,
            ChangeKind.USER_STATUS_CHANGED: user_scoped,
            ChangeKind.PERMISSION_MODIFIED: self._plan_everything,
        }

    @staticmethod
    def _plan_user(change: PermissionChange, plan: _InvalidationPlan) -> None:
        if change.user_id is not None:
            plan.user_ids.add(change.user_id)

    @staticmethod
    def _plan_role(change: PermissionChange, plan: _InvalidationPlan) -> None:
        if change.role_id is not None:
            plan.role_ids.add(change.role_id)

    @staticmethod
    def _plan_everything(change: PermissionChange, plan: _InvalidationPlan) -> None:
        plan.everything = True

    async def handle(self, changes: Iterable[PermissionChange]) -> None:
        """Invalidate every cached entry the changes could have affected."""
        plan = _InvalidationPlan(user_ids=set(), role_ids=set())
        for change in changes:
            self._planners[change.kind](change, plan)

        if plan.everything:
            logger.info("Invalidating all cached permissions")
            await self._cache.invalidate_all()
            return

        if plan.role_ids:
            async with self._uow_factory() as uow:
                for role_id in plan.role_ids:
                    plan.user_ids.update(await uow.roles.list_user_ids(role_id))

        for user_id in plan.user_ids:
            await self._cache.invalidate(user_id)
        if plan.user_ids:
            logger.debug("Invalidated cached permissions for %d users", len(plan.user_ids))


class PermissionChangePublisher:
    """Invalidates caches and records audit entries for committed changes."""

    def __init__(self, invalidator: CacheInvalidator, audit_sink: AuditSink) -> None:
        self._invalidator = invalidator
        self._audit_sink = audit_sink

    async def publish(
        self,
        changes: list[PermissionChange],
        performed_by: str,
        reason: str | None = None,
    ) -> None:
        if not changes:
            return
        await self._invalidator.handle(changes)
        for change in changes:
            await self._record(
                PermissionAuditEntry(
                    kind=change.kind,
                    performed_by=performed_by,
                    user_id=change.user_id,
                    role_id=change.role_id,
                    permission_id=change.permission_id,
                    reason=reason,
                    old_value=change.old_value,
                    new_value=change.new_value,
                )
            )

    async def _record(self, entry: PermissionAuditEntry) -> None:
        try:
            await self._audit_sink.record(entry)
        except Exception:
            logger.exception(
                "Failed to record audit entry %s (user=%s role=%s permission=%s)",
                entry.kind,
                entry.user_id,
                entry.role_id,
                entry.permission_id,
            )
