"""Permission catalog administration - activation and hierarchy changes."""

import logging
from uuid import UUID

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.entities import Permission
from permengine.domain.exceptions import HierarchyCycleError, NotFound
from permengine.domain.services import PermissionCatalog
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


class UpdatePermissionUseCase:
    """Change a permission's active flag or parent.

    Either change can alter any user's effective set or hierarchical
    fallback, so both invalidate every cached entry.
    """

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        publisher: PermissionChangePublisher,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._publisher = publisher

    async def set_active(
        self,
        permission_id: UUID,
        is_active: bool,
        performed_by: str,
        reason: str | None = None,
    ) -> Permission:
        async with self._uow_factory() as uow:
            permission = await uow.permissions.get_by_id(permission_id)
            if not permission:
                raise NotFound("Permission", str(permission_id))
            if permission.is_active == is_active:
                return permission
            permission.is_active = is_active
            await uow.permissions.update(permission)

        logger.info(
            "Permission %s %s", permission.name, "activated" if is_active else "deactivated"
        )
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.PERMISSION_MODIFIED,
                    permission_id=permission_id,
                    old_value=f"is_active={str(not is_active).lower()}",
                    new_value=f"is_active={str(is_active).lower()}",
                )
            ],
            performed_by,
            reason,
        )
        return permission

    async def set_parent(
        self,
        permission_id: UUID,
        parent_id: UUID | None,
        performed_by: str,
        reason: str | None = None,
    ) -> Permission:
        """Re-parent a permission; None detaches it from the hierarchy."""
        async with self._uow_factory() as uow:
            catalog = PermissionCatalog(await uow.permissions.list_all())
            permission = catalog.get(permission_id)
            if not permission:
                raise NotFound("Permission", str(permission_id))
            if parent_id is not None and parent_id not in catalog:
                raise NotFound("Permission", str(parent_id))
            if catalog.would_create_cycle(permission_id, parent_id):
                raise HierarchyCycleError(
                    f"Setting parent of '{permission.name}' to "
                    f"'{catalog.get(parent_id).name}' would create a cycle"
                )
            old_parent_id = permission.parent_permission_id
            if old_parent_id == parent_id:
                return permission
            permission.parent_permission_id = parent_id
            await uow.permissions.update(permission)

        logger.info("Permission %s re-parented to %s", permission.name, parent_id)
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.PERMISSION_MODIFIED,
                    permission_id=permission_id,
                    old_value=f"parent={old_parent_id}",
                    new_value=f"parent={parent_id}",
                )
            ],
            performed_by,
            reason,
        )
        return permission
