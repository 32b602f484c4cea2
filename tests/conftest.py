"""Pytest fixtures for permengine tests."""

from __future__ import annotations

from collections import Counter
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from copy import deepcopy
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from permengine.application.services.change_publisher import (
    CacheInvalidator,
    PermissionChangePublisher,
)
from permengine.domain.entities import (
    Permission,
    PermissionAuditEntry,
    Role,
    User,
    UserAccessSnapshot,
    UserPermission,
)
from permengine.domain.value_objects import PermissionState
from permengine.infrastructure.cache.memory_cache import InMemoryPermissionCache


class FakeStore:
    """Shared in-memory state behind every FakeUnitOfWork of a test.

    Repositories hand out copies, so a use case must call update() for a
    change to stick, as with a real database.
    """

    def __init__(self) -> None:
        self.permissions: dict[UUID, Permission] = {}
        self.roles: dict[UUID, Role] = {}
        self.users: dict[UUID, User] = {}
        self.overrides: dict[UUID, UserPermission] = {}
        self.calls: Counter[str] = Counter()
        self.commits = 0
        self.rollbacks = 0

    def add_permission(
        self,
        resource: str,
        action: str,
        category: str = "General",
        parent: Permission | None = None,
        is_active: bool = True,
    ) -> Permission:
        permission = Permission(
            id=uuid4(),
            resource=resource,
            action=action,
            category=category,
            is_active=is_active,
            parent_permission_id=parent.id if parent else None,
        )
        self.permissions[permission.id] = permission
        return permission

    def add_role(
        self,
        name: str,
        permissions: Iterable[Permission] = (),
        is_active: bool = True,
    ) -> Role:
        role = Role(
            id=uuid4(),
            name=name,
            is_active=is_active,
            permission_ids=[p.id for p in permissions],
        )
        self.roles[role.id] = role
        return role

    def add_user(
        self,
        username: str,
        roles: Iterable[Role] = (),
        is_active: bool = True,
    ) -> User:
        user = User(id=uuid4(), username=username, is_active=is_active, role_ids=[r.id for r in roles])
        self.users[user.id] = user
        return user

    def add_override(
        self,
        user: User,
        permission: Permission,
        state: PermissionState,
        expires_at: datetime | None = None,
        updated_at: datetime | None = None,
        reason: str | None = None,
    ) -> UserPermission:
        now = updated_at or datetime.now(UTC)
        override = UserPermission(
            id=uuid4(),
            user_id=user.id,
            permission_id=permission.id,
            state=state,
            created_at=now,
            updated_at=now,
            reason=reason,
            expires_at=expires_at,
        )
        self.overrides[override.id] = override
        return override


# --- Fake repositories ---


class FakePermissionRepository:
    """In-memory permission catalog."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, permission_id: UUID) -> Permission | None:
        return deepcopy(self._store.permissions.get(permission_id))

    async def get_by_ids(self, permission_ids: Iterable[UUID]) -> list[Permission]:
        ids = set(permission_ids)
        return [deepcopy(p) for pid, p in self._store.permissions.items() if pid in ids]

    async def get_by_name(self, name: str) -> Permission | None:
        for p in self._store.permissions.values():
            if p.name == name:
                return deepcopy(p)
        return None

    async def list_all(self) -> list[Permission]:
        self._store.calls["permissions.list_all"] += 1
        return deepcopy(list(self._store.permissions.values()))

    async def update(self, permission: Permission) -> None:
        self._store.permissions[permission.id] = deepcopy(permission)


class FakeRoleRepository:
    """In-memory roles with permission assignments."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, role_id: UUID) -> Role | None:
        return deepcopy(self._store.roles.get(role_id))

    async def get_by_ids(self, role_ids: Iterable[UUID]) -> list[Role]:
        ids = set(role_ids)
        return [deepcopy(r) for rid, r in self._store.roles.items() if rid in ids]

    async def list_all(self) -> list[Role]:
        return deepcopy(list(self._store.roles.values()))

    async def list_for_user(self, user_id: UUID) -> list[Role]:
        user = self._store.users.get(user_id)
        if not user:
            return []
        return [deepcopy(self._store.roles[rid]) for rid in user.role_ids if rid in self._store.roles]

    async def list_user_ids(self, role_id: UUID) -> list[UUID]:
        return [u.id for u in self._store.users.values() if role_id in u.role_ids]

    async def replace_permissions(self, role_id: UUID, permission_ids: list[UUID]) -> None:
        self._store.calls["roles.replace_permissions"] += 1
        self._store.roles[role_id].permission_ids = list(permission_ids)

    async def update(self, role: Role) -> None:
        self._store.roles[role.id] = deepcopy(role)


class FakeUserRepository:
    """In-memory users with role memberships."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, user_id: UUID) -> User | None:
        self._store.calls["users.get_by_id"] += 1
        return deepcopy(self._store.users.get(user_id))

    async def get_with_roles_and_overrides(self, user_id: UUID) -> UserAccessSnapshot | None:
        self._store.calls["users.get_with_roles_and_overrides"] += 1
        user = self._store.users.get(user_id)
        if not user:
            return None
        roles = [self._store.roles[rid] for rid in user.role_ids if rid in self._store.roles]
        overrides = [o for o in self._store.overrides.values() if o.user_id == user_id]
        return deepcopy(UserAccessSnapshot(user=user, roles=roles, overrides=overrides))

    async def list_all(self) -> list[User]:
        return deepcopy(list(self._store.users.values()))

    async def add_role(self, user_id: UUID, role_id: UUID) -> None:
        role_ids = self._store.users[user_id].role_ids
        if role_id not in role_ids:
            role_ids.append(role_id)

    async def remove_role(self, user_id: UUID, role_id: UUID) -> None:
        self._store.users[user_id].role_ids.remove(role_id)

    async def update(self, user: User) -> None:
        self._store.users[user.id] = deepcopy(user)


class FakeUserPermissionRepository:
    """In-memory user overrides."""

    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def list_for_user(self, user_id: UUID) -> list[UserPermission]:
        return [deepcopy(o) for o in self._store.overrides.values() if o.user_id == user_id]

    async def list_all(self) -> list[UserPermission]:
        return deepcopy(list(self._store.overrides.values()))

    async def get_active(
        self, user_id: UUID, permission_id: UUID, now: datetime
    ) -> UserPermission | None:
        live = [
            o
            for o in self._store.overrides.values()
            if o.user_id == user_id and o.permission_id == permission_id and not o.is_expired(now)
        ]
        if not live:
            return None
        return deepcopy(max(live, key=lambda o: o.updated_at))

    async def create(self, override: UserPermission) -> UserPermission:
        self._store.overrides[override.id] = deepcopy(override)
        return override

    async def bulk_create(self, overrides: list[UserPermission]) -> None:
        for o in overrides:
            self._store.overrides[o.id] = deepcopy(o)

    async def update(self, override: UserPermission) -> None:
        self._store.overrides[override.id] = deepcopy(override)

    async def delete(self, override_id: UUID) -> None:
        self._store.overrides.pop(override_id, None)

    async def delete_expired(self, now: datetime) -> list[UserPermission]:
        expired = [o for o in self._store.overrides.values() if o.is_expired(now)]
        for o in expired:
            del self._store.overrides[o.id]
        return expired


class FakeUnitOfWork:
    """In-memory Unit of Work with fake repositories over a shared store."""

    def __init__(self, store: FakeStore | None = None) -> None:
        self.store = store or FakeStore()
        self.permissions = FakePermissionRepository(self.store)
        self.roles = FakeRoleRepository(self.store)
        self.users = FakeUserRepository(self.store)
        self.user_permissions = FakeUserPermissionRepository(self.store)

    async def commit(self) -> None:
        self.store.commits += 1

    async def rollback(self) -> None:
        self.store.rollbacks += 1


def make_uow_factory(store: FakeStore):
    """Factory with the commit-on-success, rollback-on-error contract of the real one."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[FakeUnitOfWork]:
        uow = FakeUnitOfWork(store)
        try:
            yield uow
            await uow.commit()
        except BaseException:
            await uow.rollback()
            raise

    return factory


class RecordingAuditSink:
    """Audit sink that keeps entries in a list."""

    def __init__(self) -> None:
        self.entries: list[PermissionAuditEntry] = []

    async def record(self, entry: PermissionAuditEntry) -> None:
        self.entries.append(entry)


# --- Fixtures ---


@pytest.fixture
def store() -> FakeStore:
    """Fresh in-memory data for each test."""
    return FakeStore()


@pytest.fixture
def uow_factory(store: FakeStore):
    """Factory returning async context manager with FakeUnitOfWork."""
    return make_uow_factory(store)


@pytest.fixture
def cache() -> InMemoryPermissionCache:
    return InMemoryPermissionCache()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def publisher(cache, uow_factory, audit_sink) -> PermissionChangePublisher:
    """Publisher wired to the in-memory cache and recording audit sink."""
    return PermissionChangePublisher(CacheInvalidator(cache, uow_factory), audit_sink)
