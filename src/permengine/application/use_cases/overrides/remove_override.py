"""Remove user permission override use case."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.exceptions import NotFound
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


class RemoveUserOverrideUseCase:
    """Remove the live override for a (user, permission) pair."""

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
        permission_id: UUID,
        performed_by: str,
        reason: str | None = None,
    ) -> None:
        async with self._uow_factory() as uow:
            existing = await uow.user_permissions.get_active(
                user_id, permission_id, datetime.now(UTC)
            )
            if not existing:
                raise NotFound("UserPermission", f"{user_id}/{permission_id}")
            await uow.user_permissions.delete(existing.id)

        logger.info("Removed override on %s for user %s", permission_id, user_id)
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.USER_OVERRIDE_REMOVED,
                    user_id=user_id,
                    permission_id=permission_id,
                    old_value=str(existing.state),
                )
            ],
            performed_by,
            reason,
        )
