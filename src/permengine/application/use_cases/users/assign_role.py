"""Assign role to user use case."""

import logging
from uuid import UUID

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.entities import User
from permengine.domain.exceptions import NotFound
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


class AssignUserRoleUseCase:
    """Add a role membership. Assigning a role the user already holds is a no-op."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        publisher: PermissionChangePublisher,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._publisher = publisher

    async def execute(
        self,
        user_id: UUID,
        role_id: UUID,
        performed_by: str,
        reason: str | None = None,
    ) -> User:
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise NotFound("User", str(user_id))
            role = await uow.roles.get_by_id(role_id)
            if not role:
                raise NotFound("Role", str(role_id))
            if role_id in user.role_ids:
                return user
            await uow.users.add_role(user_id, role_id)
            user.role_ids.append(role_id)

        logger.info("Assigned role %s to user %s", role.name, user.username)
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.USER_ROLE_ASSIGNED,
                    user_id=user_id,
                    role_id=role_id,
                    new_value=role.name,
                )
            ],
            performed_by,
            reason,
        )
        return user
