"""Update user permission overrides from the matrix view."""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from uuid import UUID, uuid4

from permengine.application.ports import UnitOfWorkFactory
from permengine.application.services.change_publisher import (
    PermissionChange,
    PermissionChangePublisher,
)
from permengine.domain.entities import UserPermission
from permengine.domain.entities.user_permission import MAX_REASON_LENGTH
from permengine.domain.exceptions import MatrixUpdateRejected, NotFound, ValidationError
from permengine.domain.value_objects import ChangeKind, PermissionState

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Permission matrix update"


class UpdateUserOverridesUseCase:
    """Update-or-create one override per (user, permission) entry.

    Entries for inactive permissions are skipped, not created.
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
        user_id: UUID,
        overrides: Mapping[UUID, PermissionState],
        performed_by: str,
        reason: str | None = None,
    ) -> list[UserPermission]:
        if not overrides:
            raise ValidationError("Permission overrides cannot be empty")
        if reason is not None and len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(f"Reason cannot exceed {MAX_REASON_LENGTH} characters")
        states = {pid: PermissionState(state) for pid, state in overrides.items()}

        now = datetime.now(UTC)
        changes: list[PermissionChange] = []
        written: list[UserPermission] = []
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if user is None:
                raise NotFound("User", str(user_id))

            permissions = {p.id: p for p in await uow.permissions.get_by_ids(states.keys())}
            missing = [pid for pid in states if pid not in permissions]
            if missing:
                raise MatrixUpdateRejected(missing_permission_ids=missing)

            to_create: list[UserPermission] = []
            for permission_id, state in states.items():
                permission = permissions[permission_id]
                if not permission.is_active:
                    logger.info(
                        "Skipping override for inactive permission %s (user %s)",
                        permission.name,
                        user_id,
                    )
                    continue

                existing = await uow.user_permissions.get_active(user_id, permission_id, now)
                if existing is not None:
                    old_state = existing.state
                    existing.state = state
                    existing.reason = reason or DEFAULT_REASON
                    existing.updated_at = now
                    existing.updated_by = performed_by
                    await uow.user_permissions.update(existing)
                    written.append(existing)
                    changes.append(
                        PermissionChange(
                            kind=ChangeKind.USER_OVERRIDE_UPDATED,
                            user_id=user_id,
                            permission_id=permission_id,
                            old_value=str(old_state),
                            new_value=str(state),
                        )
                    )
                    continue

                override = UserPermission(
                    id=uuid4(),
                    user_id=user_id,
                    permission_id=permission_id,
                    state=state,
                    created_at=now,
                    updated_at=now,
                    reason=reason or DEFAULT_REASON,
                    created_by=performed_by,
                    updated_by=performed_by,
                )
                to_create.append(override)
                changes.append(
                    PermissionChange(
                        kind=ChangeKind.USER_OVERRIDE_CREATED,
                        user_id=user_id,
                        permission_id=permission_id,
                        new_value=str(state),
                    )
                )

            if to_create:
                await uow.user_permissions.bulk_create(to_create)
                written.extend(to_create)

        logger.info("Updated %d permission overrides for user %s", len(written), user_id)
        await self._publisher.publish(changes, performed_by, reason)
        return written
