"""Assign user permission override use case."""

import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.entities import UserPermission
from permengine.domain.entities.user_permission import MAX_REASON_LENGTH
from permengine.domain.exceptions import NotFound, ValidationError
from permengine.domain.value_objects import ChangeKind, PermissionState

logger = logging.getLogger(__name__)


class AssignUserOverrideUseCase:
    """Grant or deny one permission to one user, outside their roles."""

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
        state: PermissionState,
        performed_by: str,
        reason: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserPermission:
        """Update the live override for the pair, or create one."""
        state = PermissionState(state)
        now = datetime.now(UTC)
        if reason is not None and len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason cannot exceed {MAX_REASON_LENGTH} characters")
        if expires_at is not None and expires_at <= now:
            raise ValidationError("Expiration date must be in the future")

        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise NotFound("User", str(user_id))
            permission = await uow.permissions.get_by_id(permission_id)
            if not permission:
                raise NotFound("Permission", str(permission_id))

            existing = await uow.user_permissions.get_active(user_id, permission_id, now)
            if existing:
                change = PermissionChange(
                    kind=ChangeKind.USER_OVERRIDE_UPDATED,
                    user_id=user_id,
                    permission_id=permission_id,
                    old_value=str(existing.state),
                    new_value=str(state),
                )
                existing.state = state
                existing.reason = reason
                existing.expires_at = expires_at
                existing.updated_at = now
                existing.updated_by = performed_by
                await uow.user_permissions.update(existing)
                override = existing
            else:
                override = UserPermission(
                    id=uuid4(),
                    user_id=user_id,
                    permission_id=permission_id,
                    state=state,
                    created_at=now,
                    updated_at=now,
                    reason=reason,
                    expires_at=expires_at,
                    created_by=performed_by,
                    updated_by=performed_by,
                )
                await uow.user_permissions.create(override)
                change = PermissionChange(
                    kind=ChangeKind.USER_OVERRIDE_CREATED,
                    user_id=user_id,
                    permission_id=permission_id,
                    new_value=str(state),
                )

        logger.info(
            "Override %s on %s for user %s by %s", state, permission.name, user.username, performed_by
        )
        await self._publisher.publish([change], performed_by, reason)
        return override
