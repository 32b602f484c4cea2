"""Effective permission calculation.

Pure functions of their inputs: no I/O. The clock is read only when `now` is omitted.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from permengine.domain.entities import Permission, Role, User, UserPermission
from permengine.domain.services.hierarchy import PermissionCatalog
from permengine.domain.value_objects import PermissionState


@dataclass(frozen=True)
class EffectivePermissions:
    """Breakdown of how a user's effective permission set was assembled."""

    role_permissions: frozenset[str] = frozenset()
    grants: frozenset[str] = frozenset()
    denies: frozenset[str] = frozenset()
    active_overrides: tuple[UserPermission, ...] = field(default_factory=tuple)

    @property
    def effective(self) -> frozenset[str]:
        # Deny always wins, over role grants and explicit grant overrides alike
        return (self.role_permissions | self.grants) - self.denies


EMPTY = EffectivePermissions()


def active_overrides(
    overrides: Iterable[UserPermission],
    user: User,
    now: datetime,
) -> list[UserPermission]:
    """Non-expired overrides for the user, one per permission (latest update wins)."""
    latest: dict[UUID, UserPermission] = {}
    for override in overrides:
        if override.user_id != user.id or override.is_expired(now):
            continue
        if override.state not in (PermissionState.GRANT, PermissionState.DENY):
            continue
        current = latest.get(override.permission_id)
        if current is None or override.updated_at > current.updated_at:
            latest[override.permission_id] = override
    return list(latest.values())


def resolve_effective(
    user: User,
    roles: Iterable[Role],
    all_permissions: Iterable[Permission] | PermissionCatalog,
    overrides: Iterable[UserPermission],
    now: datetime | None = None,
) -> EffectivePermissions:
    """Combine active roles and live overrides into an effective permission breakdown."""
    if not user.is_active:
        return EMPTY

    now = now or datetime.now(UTC)
    catalog = (
        all_permissions
        if isinstance(all_permissions, PermissionCatalog)
        else PermissionCatalog(all_permissions)
    )

    role_permissions: set[str] = set()
    for role in roles:
        if not role.is_active:
            continue
        for permission_id in role.permission_ids:
            permission = catalog.get(permission_id)
            if permission is not None and permission.is_active:
                role_permissions.add(permission.name)

    live = active_overrides(overrides, user, now)
    grants: set[str] = set()
    denies: set[str] = set()
    for override in live:
        permission = catalog.get(override.permission_id)
        if permission is None:
            continue
        if override.state == PermissionState.GRANT:
            if permission.is_active:
                grants.add(permission.name)
        else:
            # Denies apply even to inactive permissions (fail closed)
            denies.add(permission.name)

    return EffectivePermissions(
        role_permissions=frozenset(role_permissions),
        grants=frozenset(grants),
        denies=frozenset(denies),
        active_overrides=tuple(sorted(live, key=lambda o: str(o.permission_id))),
    )


def compute_effective(
    user: User,
    roles: Iterable[Role],
    all_permissions: Iterable[Permission] | PermissionCatalog,
    overrides: Iterable[UserPermission],
    now: datetime | None = None,
) -> frozenset[str]:
    """Exact set of permission names the user currently holds."""
    return resolve_effective(user, roles, all_permissions, overrides, now).effective
