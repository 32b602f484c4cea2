"""Build user permission matrix use case."""

from uuid import UUID

from permengine.application.dto.matrix_dto import UserPermissionMatrix
from permengine.application.ports import UnitOfWorkFactory
from permengine.domain.entities import Permission
from permengine.domain.exceptions import NotFound, ValidationError
from permengine.domain.services import PermissionCatalog, resolve_effective


class BuildUserPermissionMatrixUseCase:
    """Role-derived permissions, live overrides and the final effective set for one user."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, user_id: UUID, category: str | None = None) -> UserPermissionMatrix:
        if category is not None and not category.strip():
            raise ValidationError("Category cannot be empty")

        async with self._uow_factory() as uow:
            snapshot = await uow.users.get_with_roles_and_overrides(user_id)
            if snapshot is None:
                raise NotFound("User", str(user_id))
            catalog = PermissionCatalog(await uow.permissions.list_all())

        breakdown = resolve_effective(snapshot.user, snapshot.roles, catalog, snapshot.overrides)

        def in_scope(permission_id: UUID) -> bool:
            permission = catalog.get(permission_id)
            return permission is not None and (
                category is None or permission.category == category.strip()
            )

        def to_permissions(names: frozenset[str]) -> list[Permission]:
            found = (catalog.find_by_name(n) for n in names)
            return sorted(
                (p for p in found if p is not None and in_scope(p.id)), key=lambda p: p.name
            )

        return UserPermissionMatrix(
            user_id=user_id,
            roles=sorted((r for r in snapshot.roles if r.is_active), key=lambda r: r.name),
            role_permissions=to_permissions(breakdown.role_permissions),
            overrides=[o for o in breakdown.active_overrides if in_scope(o.permission_id)],
            effective_permissions=to_permissions(breakdown.effective),
        )
