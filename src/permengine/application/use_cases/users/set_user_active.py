"""Activate or deactivate a user account."""

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


class SetUserActiveUseCase:
    """Flip the user's active flag. Inactive users are authorized for nothing."""

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
        is_active: bool,
        performed_by: str,
        reason: str | None = None,
    ) -> User:
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise NotFound("User", str(user_id))
            if user.is_active == is_active:
                return user
            user.is_active = is_active
            await uow.users.update(user)

        logger.info(
            "User %s %s by %s",
            user.username,
            "activated" if is_active else "deactivated",
            performed_by,
        )
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.USER_STATUS_CHANGED,
                    user_id=user_id,
                    old_value=str(not is_active).lower(),
                    new_value=str(is_active).lower(),
                )
            ],
            performed_by,
            reason,
        )
        return user
