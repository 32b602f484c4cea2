"""Cleanup expired overrides use case."""

import logging
from datetime import UTC, datetime

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.value_objects import ChangeKind

logger = logging.getLogger(__name__)


class CleanupExpiredOverridesUseCase:
    """Physically delete expired overrides. Returns how many were removed."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        publisher: PermissionChangePublisher,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._publisher = publisher

    async def execute(self, performed_by: str, now: datetime | None = None) -> int:
        async with self._uow_factory() as uow:
            removed = await uow.user_permissions.delete_expired(now or datetime.now(UTC))

        if removed:
            logger.info("Removed %d expired permission overrides", len(removed))
        await self._publisher.publish(
            [
                PermissionChange(
                    kind=ChangeKind.USER_OVERRIDE_REMOVED,
                    user_id=o.user_id,
                    permission_id=o.permission_id,
                    old_value=str(o.state),
                )
                for o in removed
            ],
            performed_by,
            "Expired override cleanup",
        )
        return len(removed)
