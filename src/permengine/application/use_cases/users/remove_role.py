"""Remove role from user use case."""

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


class RemoveUserRoleUseCase:
    """Drop a role membership."""

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
            if role_id not in user.role_ids:
                raise NotFound("UserRole", f"{user_id}/{role_id}")
            await uow.users.remove_role(user_id, role_id)
            user.role_ids.remove(role_id)

        logger.info("Removed role %s from user %s", role_id, user.username)
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.USER_ROLE_REMOVED,
                    user_id=user_id,
                    role_id=role_id,
                    old_value=str(role_id),
                )
            ],
            performed_by,
            reason,
        )
        return user
