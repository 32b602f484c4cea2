"""Activate or deactivate a role."""

import logging
from uuid import UUID

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.entities import Role
from permengine.domain.exceptions import NotFound
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


class SetRoleActiveUseCase:
    """Flip the role's active flag. An inactive role contributes no permissions.

    Every member's cached permissions are invalidated.
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
        role_id: UUID,
        is_active: bool,
        performed_by: str,
        reason: str | None = None,
    ) -> Role:
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if not role:
                raise NotFound("Role", str(role_id))
            if role.is_active == is_active:
                return role
            role.is_active = is_active
            await uow.roles.update(role)

        logger.info(
            "Role %s %s by %s",
            role.name,
            "activated" if is_active else "deactivated",
            performed_by,
        )
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.ROLE_STATUS_CHANGED,
                    role_id=role_id,
                    old_value=str(not is_active).lower(),
                    new_value=str(is_active).lower(),
                )
            ],
            performed_by,
            reason,
        )
        return role
