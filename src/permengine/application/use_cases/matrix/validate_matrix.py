"""Permission matrix consistency validation.

Nothing is corrected here; every problem is reported for an operator to
resolve.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from permengine.application.dto.matrix_dto import (
    MatrixValidationResult,
    ValidationIssue,
    ValidationSummary,
)
from permengine.application.ports import UnitOfWorkFactory
from permengine.domain.entities import Permission, Role, User, UserPermission
from permengine.domain.services import PermissionCatalog
from permengine.domain.value_objects import ValidationSeverity

logger = logging.getLogger(__name__)

INVALID_PERMISSION_REFERENCE = "INVALID_PERMISSION_REFERENCE"
INACTIVE_PERMISSION_ASSIGNED = "INACTIVE_PERMISSION_ASSIGNED"
ROLE_NO_PERMISSIONS = "ROLE_NO_PERMISSIONS"
INVALID_ROLE_REFERENCE = "INVALID_ROLE_REFERENCE"
INVALID_PERMISSION_OVERRIDE = "INVALID_PERMISSION_OVERRIDE"
INVALID_USER_OVERRIDE = "INVALID_USER_OVERRIDE"
EXPIRED_USER_OVERRIDE = "EXPIRED_USER_OVERRIDE"
ORPHANED_PERMISSION = "ORPHANED_PERMISSION"

CHECKS = [
    "Permission Hierarchy",
    "Role-Permission Assignments",
    "User Role Memberships",
    "User Permission Overrides",
    "Orphaned Permissions",
]


class _Report:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(
        self,
        code: str,
        message: str,
        entity_type: str,
        *ids: UUID,
        severity: ValidationSeverity = ValidationSeverity.HIGH,
    ) -> None:
        self.errors.append(ValidationIssue(code, message, entity_type, tuple(ids), severity))

    def warning(
        self, code: str, message: str, entity_type: str, *ids: UUID, suggested_action: str
    ) -> None:
        self.warnings.append(
            ValidationIssue(code, message, entity_type, tuple(ids), suggested_action=suggested_action)
        )


class ValidateMatrixUseCase:
    """Hierarchy, assignment, membership and override consistency checks."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, now: datetime | None = None) -> MatrixValidationResult:
        async with self._uow_factory() as uow:
            permissions = await uow.permissions.list_all()
            roles = await uow.roles.list_all()
            users = await uow.users.list_all()
            overrides = await uow.user_permissions.list_all()

        now = now or datetime.now(UTC)
        catalog = PermissionCatalog(permissions)
        report = _Report()

        for violation in catalog.validate_hierarchy():
            report.error(
                violation.code,
                violation.message,
                "Permission",
                *violation.permission_ids,
                severity=violation.severity,
            )
        self._check_roles(report, roles, catalog)
        self._check_memberships(report, users, roles)
        self._check_overrides(report, overrides, catalog, users, now)
        self._check_orphans(report, permissions, roles, overrides)

        summary = ValidationSummary(
            error_count=len(report.errors),
            warning_count=len(report.warnings),
            roles_validated=len(roles),
            permissions_validated=len(permissions),
            assignments_validated=sum(len(r.permission_ids) for r in roles),
            overrides_validated=len(overrides),
            checks_performed=list(CHECKS),
        )
        if report.errors:
            logger.warning(
                "Permission matrix validation found %d errors and %d warnings",
                summary.error_count,
                summary.warning_count,
            )
        else:
            logger.info("Permission matrix valid (%d warnings)", summary.warning_count)
        return MatrixValidationResult(report.errors, report.warnings, summary)

    @staticmethod
    def _check_roles(report: _Report, roles: list[Role], catalog: PermissionCatalog) -> None:
        for role in roles:
            for permission_id in role.permission_ids:
                permission = catalog.get(permission_id)
                if permission is None:
                    report.error(
                        INVALID_PERMISSION_REFERENCE,
                        f"Role '{role.name}' references non-existent permission {permission_id}",
                        "Role",
                        role.id,
                        permission_id,
                    )
                elif not permission.is_active:
                    report.warning(
                        INACTIVE_PERMISSION_ASSIGNED,
                        f"Role '{role.name}' has inactive permission '{permission.name}' assigned",
                        "Role",
                        role.id,
                        permission.id,
                        suggested_action="Remove the inactive permission or reactivate it",
                    )
            if not role.permission_ids:
                report.warning(
                    ROLE_NO_PERMISSIONS,
                    f"Role '{role.name}' has no permissions assigned",
                    "Role",
                    role.id,
                    suggested_action="Assign permissions to the role or remove the unused role",
                )

    @staticmethod
    def _check_memberships(report: _Report, users: list[User], roles: list[Role]) -> None:
        role_ids = {r.id for r in roles}
        for user in users:
            for role_id in user.role_ids:
                if role_id not in role_ids:
                    report.error(
                        INVALID_ROLE_REFERENCE,
                        f"User '{user.username}' references non-existent role {role_id}",
                        "User",
                        user.id,
                        role_id,
                    )

    @staticmethod
    def _check_overrides(
        report: _Report,
        overrides: list[UserPermission],
        catalog: PermissionCatalog,
        users: list[User],
        now: datetime,
    ) -> None:
        user_ids = {u.id for u in users}
        for override in overrides:
            if override.permission_id not in catalog:
                report.error(
                    INVALID_PERMISSION_OVERRIDE,
                    f"Override {override.id} references non-existent permission "
                    f"{override.permission_id}",
                    "UserPermission",
                    override.id,
                )
            if override.user_id not in user_ids:
                report.error(
                    INVALID_USER_OVERRIDE,
                    f"Override {override.id} references non-existent user {override.user_id}",
                    "UserPermission",
                    override.id,
                )
            if override.is_expired(now):
                report.warning(
                    EXPIRED_USER_OVERRIDE,
                    f"Override {override.id} expired at {override.expires_at.isoformat()}",
                    "UserPermission",
                    override.id,
                    suggested_action="Remove the expired override or extend its expiry",
                )

    @staticmethod
    def _check_orphans(
        report: _Report,
        permissions: list[Permission],
        roles: list[Role],
        overrides: list[UserPermission],
    ) -> None:
        referenced = {pid for r in roles for pid in r.permission_ids}
        referenced.update(o.permission_id for o in overrides)
        for permission in permissions:
            if permission.is_active and permission.id not in referenced:
                report.warning(
                    ORPHANED_PERMISSION,
                    f"Permission '{permission.name}' is not assigned to any role or user",
                    "Permission",
                    permission.id,
                    suggested_action="Assign the permission or deactivate it",
                )
