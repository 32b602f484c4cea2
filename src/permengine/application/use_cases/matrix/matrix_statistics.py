"""Permission matrix statistics use case."""

from collections import Counter
from datetime import UTC, datetime
from uuid import UUID

from permengine.application.dto.matrix_dto import (
    CategoryStatistics,
    MatrixStatistics,
    OverrideStatistics,
    PermissionUsage,
    RoleStatistics,
    SystemStatistics,
)
from permengine.application.ports import UnitOfWorkFactory
from permengine.domain.entities import Permission, Role, User, UserPermission
from permengine.domain.value_objects import PermissionState


def _percentage(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


class MatrixStatisticsUseCase:
    """Read-side usage report. All counts come from one snapshot of the stores."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = unit_of_work_factory

    async def execute(self, now: datetime | None = None) -> MatrixStatistics:
        async with self._uow_factory() as uow:
            permissions = await uow.permissions.list_all()
            roles = await uow.roles.list_all()
            users = await uow.users.list_all()
            overrides = await uow.user_permissions.list_all()
        return compute_statistics(permissions, roles, users, overrides, now or datetime.now(UTC))


def compute_statistics(
    permissions: list[Permission],
    roles: list[Role],
    users: list[User],
    overrides: list[UserPermission],
    now: datetime,
) -> MatrixStatistics:
    by_id = {p.id: p for p in permissions}
    role_permissions: dict[UUID, list[Permission]] = {
        r.id: [by_id[pid] for pid in r.permission_ids if pid in by_id] for r in roles
    }
    assigned_ids = {rid: {p.id for p in ps} for rid, ps in role_permissions.items()}
    members: dict[UUID, set[UUID]] = {r.id: set() for r in roles}
    for user in users:
        for role_id in user.role_ids:
            members.setdefault(role_id, set()).add(user.id)

    total_assignments = sum(len(ps) for ps in role_permissions.values())
    system = SystemStatistics(
        total_permissions=len(permissions),
        active_permissions=sum(1 for p in permissions if p.is_active),
        inactive_permissions=sum(1 for p in permissions if not p.is_active),
        total_roles=len(roles),
        active_roles=sum(1 for r in roles if r.is_active),
        total_users=len(users),
        total_role_permission_assignments=total_assignments,
        total_user_overrides=len(overrides),
        average_permissions_per_role=total_assignments / len(roles) if roles else 0.0,
    )

    role_stats = [
        RoleStatistics(
            role_id=role.id,
            role_name=role.name,
            permission_count=len(role_permissions[role.id]),
            user_count=len(members[role.id]),
            permissions_by_category=dict(Counter(p.category for p in role_permissions[role.id])),
        )
        for role in roles
    ]

    overrides_per_permission = Counter(o.permission_id for o in overrides)
    usage = []
    for permission in permissions:
        holding = [r.id for r in roles if permission.id in assigned_ids[r.id]]
        holders = set().union(*(members[rid] for rid in holding)) if holding else set()
        usage.append(
            PermissionUsage(
                permission_id=permission.id,
                permission_name=permission.name,
                role_count=len(holding),
                user_count=len(holders),
                override_count=overrides_per_permission[permission.id],
                role_usage_percentage=_percentage(len(holding), len(roles)),
                user_usage_percentage=_percentage(len(holders), len(users)),
            )
        )

    categories = []
    for category in sorted({p.category for p in permissions}):
        in_category = [p for p in permissions if p.category == category]
        ids = {p.id for p in in_category}
        roles_using = [r for r in roles if assigned_ids[r.id] & ids]
        categories.append(
            CategoryStatistics(
                category=category,
                permission_count=len(in_category),
                role_assignment_count=sum(
                    1 for r in roles for p in role_permissions[r.id] if p.id in ids
                ),
                override_count=sum(1 for o in overrides if o.permission_id in ids),
                average_role_usage=_percentage(len(roles_using), len(roles)),
            )
        )

    users_with_overrides = len({o.user_id for o in overrides})
    override_stats = OverrideStatistics(
        total=len(overrides),
        grants=sum(1 for o in overrides if o.state == PermissionState.GRANT),
        denies=sum(1 for o in overrides if o.state == PermissionState.DENY),
        active=sum(1 for o in overrides if o.is_active(now)),
        expired=sum(1 for o in overrides if o.is_expired(now)),
        users_with_overrides=users_with_overrides,
        average_per_user=len(overrides) / users_with_overrides if users_with_overrides else 0.0,
        common_reasons=dict(
            Counter(o.reason.strip() for o in overrides if o.reason and o.reason.strip()).most_common()
        ),
    )

    return MatrixStatistics(
        system=system,
        roles=role_stats,
        permission_usage=usage,
        categories=categories,
        overrides=override_stats,
    )
