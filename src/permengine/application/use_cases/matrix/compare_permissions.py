"""Access-review comparison of roles and users."""

import logging
from collections.abc import Iterable
from uuid import UUID

from permengine.application.dto.matrix_dto import PermissionComparison, PermissionEntity
from permengine.application.ports import UnitOfWorkFactory
from permengine.domain.entities import Permission, Role
from permengine.domain.exceptions import NotFound
from permengine.domain.services import PermissionCatalog, resolve_effective

logger = logging.getLogger(__name__)


def build_comparison(
    first: PermissionEntity,
    second: PermissionEntity,
    first_permissions: Iterable[Permission],
    second_permissions: Iterable[Permission],
) -> PermissionComparison:
    """Similarity is common / union * 100, and 100.0 when both sides are empty."""
    first_by_id = {p.id: p for p in first_permissions}
    second_by_id = {p.id: p for p in second_permissions}
    common_ids = first_by_id.keys() & second_by_id.keys()
    union = len(first_by_id.keys() | second_by_id.keys())

    def by_name(permissions: Iterable[Permission]) -> list[Permission]:
        return sorted(permissions, key=lambda p: p.name)

    return PermissionComparison(
        first=first,
        second=second,
        common=by_name(first_by_id[i] for i in common_ids),
        only_first=by_name(p for i, p in first_by_id.items() if i not in common_ids),
        only_second=by_name(p for i, p in second_by_id.items() if i not in common_ids),
        similarity_percentage=len(common_ids) / union * 100 if union else 100.0,
        total_unique_permissions=union,
    )


def _role_permissions(role: Role, catalog: PermissionCatalog) -> list[Permission]:
    found = (catalog.get(pid) for pid in role.permission_ids)
    return [p for p in found if p is not None and p.is_active]


class ComparePermissionsUseCase:
    """Compare two roles, or a user's effective set with a role."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = unit_of_work_factory

    async def compare_roles(self, first_role_id: UUID, second_role_id: UUID) -> PermissionComparison:
        async with self._uow_factory() as uow:
            first = await uow.roles.get_by_id(first_role_id)
            if first is None:
                raise NotFound("Role", str(first_role_id))
            second = await uow.roles.get_by_id(second_role_id)
            if second is None:
                raise NotFound("Role", str(second_role_id))
            catalog = PermissionCatalog(await uow.permissions.list_all())

        logger.debug("Comparing roles %s and %s", first.name, second.name)
        first_permissions = _role_permissions(first, catalog)
        second_permissions = _role_permissions(second, catalog)
        return build_comparison(
            PermissionEntity(first.id, first.name, "Role", len(first_permissions)),
            PermissionEntity(second.id, second.name, "Role", len(second_permissions)),
            first_permissions,
            second_permissions,
        )

    async def compare_user_and_role(self, user_id: UUID, role_id: UUID) -> PermissionComparison:
        async with self._uow_factory() as uow:
            snapshot = await uow.users.get_with_roles_and_overrides(user_id)
            if snapshot is None:
                raise NotFound("User", str(user_id))
            role = await uow.roles.get_by_id(role_id)
            if role is None:
                raise NotFound("Role", str(role_id))
            catalog = PermissionCatalog(await uow.permissions.list_all())

        logger.debug("Comparing user %s with role %s", snapshot.user.username, role.name)
        effective = resolve_effective(
            snapshot.user, snapshot.roles, catalog, snapshot.overrides
        ).effective
        found = (catalog.find_by_name(name) for name in effective)
        user_permissions = [p for p in found if p is not None]
        role_permissions = _role_permissions(role, catalog)
        return build_comparison(
            PermissionEntity(snapshot.user.id, snapshot.user.username, "User", len(user_permissions)),
            PermissionEntity(role.id, role.name, "Role", len(role_permissions)),
            user_permissions,
            role_permissions,
        )
