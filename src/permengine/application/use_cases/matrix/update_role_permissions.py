"""Replace role permission assignments - single role and bulk."""

import logging
from collections.abc import Iterable, Mapping
from uuid import UUID

from permengine.application.ports import UnitOfWork, UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.entities import Permission, Role
from permengine.domain.exceptions import MatrixUpdateRejected, ValidationError
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


async def _replace_assignments(
    uow: UnitOfWork,
    role: Role,
    requested: list[UUID],
    permissions: Mapping[UUID, Permission],
) -> list[PermissionChange]:
    """Clear-then-add in one store call; inactive permissions are not assigned."""
    new_ids = [pid for pid in requested if permissions[pid].is_active]
    skipped = len(requested) - len(new_ids)
    if skipped:
        logger.info("Skipping %d inactive permissions for role %s", skipped, role.name)

    old = set(role.permission_ids)
    new = set(new_ids)
    await uow.roles.replace_permissions(role.id, new_ids)

    def label(pid: UUID) -> str:
        permission = permissions.get(pid)
        return permission.name if permission else str(pid)

    changes = [
        PermissionChange(
            kind=ChangeKind.ROLE_PERMISSION_ASSIGNED,
            role_id=role.id,
            permission_id=pid,
            new_value=label(pid),
        )
        for pid in new_ids
        if pid not in old
    ]
    changes.extend(
        PermissionChange(
            kind=ChangeKind.ROLE_PERMISSION_REMOVED,
            role_id=role.id,
            permission_id=pid,
            old_value=label(pid),
        )
        for pid in sorted(old - new, key=str)
    )
    role.permission_ids = new_ids
    return changes


def _dedupe(ids: Iterable[UUID]) -> list[UUID]:
    return list(dict.fromkeys(ids))


class UpdateRolePermissionsUseCase:
    """Replace one role's permission set atomically."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        publisher: PermissionChangePublisher,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._publisher = publisher

    async def execute(
        self,
        role_id: UUID,
        permission_ids: Iterable[UUID],
        performed_by: str,
        reason: str | None = None,
    ) -> Role:
        """Reject the whole update, naming missing ids, if the role or any permission is unknown."""
        requested = _dedupe(permission_ids)

        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if role is None:
                raise MatrixUpdateRejected(missing_role_ids=[role_id])

            found = await uow.permissions.get_by_ids(set(requested) | set(role.permission_ids))
            permissions = {p.id: p for p in found}
            missing = [pid for pid in requested if pid not in permissions]
            if missing:
                raise MatrixUpdateRejected(missing_permission_ids=missing)

            changes = await _replace_assignments(uow, role, requested, permissions)

        logger.info(
            "Updated role %s with %d permissions (%d changes)",
            role.name,
            len(role.permission_ids),
            len(changes),
        )
        await self._publisher.publish(changes, performed_by, reason)
        return role


class BulkUpdateRolePermissionsUseCase:
    """Replace the permission sets of many roles.

    Every role id and permission id is checked before any role is touched,
    so a rejected request leaves all roles unchanged.
    """

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        publisher: PermissionChangePublisher,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._publisher = publisher

    async def execute(
        self,
        updates: Mapping[UUID, Iterable[UUID]],
        performed_by: str,
        reason: str | None = None,
    ) -> list[Role]:
        if not updates:
            raise ValidationError("Role permission updates cannot be empty")
        requested = {role_id: _dedupe(ids) for role_id, ids in updates.items()}
        all_permission_ids = {pid for ids in requested.values() for pid in ids}

        async with self._uow_factory() as uow:
            roles = {r.id: r for r in await uow.roles.get_by_ids(requested.keys())}
            for role in roles.values():
                all_permission_ids.update(role.permission_ids)
            permissions = {p.id: p for p in await uow.permissions.get_by_ids(all_permission_ids)}

            missing_roles = [rid for rid in requested if rid not in roles]
            missing_permissions = sorted(
                {pid for ids in requested.values() for pid in ids if pid not in permissions},
                key=str,
            )
            if missing_roles or missing_permissions:
                logger.warning(
                    "Rejected bulk role update: %d missing roles, %d missing permissions",
                    len(missing_roles),
                    len(missing_permissions),
                )
                raise MatrixUpdateRejected(missing_roles, missing_permissions)

            changes: list[PermissionChange] = []
            for role_id, ids in requested.items():
                changes.extend(await _replace_assignments(uow, roles[role_id], ids, permissions))

        logger.info("Bulk updated %d roles (%d changes)", len(requested), len(changes))
        await self._publisher.publish(changes, performed_by, reason)
        return [roles[role_id] for role_id in requested]
