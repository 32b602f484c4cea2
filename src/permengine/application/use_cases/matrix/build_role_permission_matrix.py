"""Build role-permission matrix use case."""

import logging

from permengine.application.dto.matrix_dto import RolePermissionMatrix
from permengine.application.ports import UnitOfWorkFactory
from permengine.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)


class BuildRolePermissionMatrixUseCase:
    """Active roles x active permissions, optionally narrowed to one category."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, category: str | None = None) -> RolePermissionMatrix:
        if category is not None and not category.strip():
            raise ValidationError("Category cannot be empty")

        async with self._uow_factory() as uow:
            roles = await uow.roles.list_all()
            permissions = await uow.permissions.list_all()

        permissions = [p for p in permissions if p.is_active]
        if category is not None:
            permissions = [p for p in permissions if p.category == category.strip()]
        permissions.sort(key=lambda p: (p.category, p.name))
        roles = sorted((r for r in roles if r.is_active), key=lambda r: r.name)

        grid = {
            role.id: {p.id: role.has_permission(p.id) for p in permissions} for role in roles
        }
        logger.debug(
            "Built role-permission matrix: %d roles, %d permissions", len(roles), len(permissions)
        )
        return RolePermissionMatrix(
            roles=roles,
            permissions=permissions,
            grid=grid,
            categories=sorted({p.category for p in permissions}),
        )
