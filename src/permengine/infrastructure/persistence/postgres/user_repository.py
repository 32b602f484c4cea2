"""PostgreSQL user repository implementation."""

from uuid import UUID

from psycopg import AsyncConnection

from permengine.domain.entities import User, UserAccessSnapshot
from permengine.infrastructure.persistence.postgres.role_repository import (
    PostgresRoleRepository,
)
from permengine.infrastructure.persistence.postgres.user_permission_repository import (
    PostgresUserPermissionRepository,
)

_SELECT_USERS = (
    "SELECT u.id, u.username, u.is_active, "
    "COALESCE(array_agg(ur.role_id ORDER BY ur.role_id) "
    "FILTER (WHERE ur.role_id IS NOT NULL), '{}') "
    "FROM app_user u LEFT JOIN user_role ur ON ur.user_id = u.id"
)


def _row_to_user(r: tuple) -> User:
    return User(id=r[0], username=r[1], is_active=r[2], role_ids=list(r[3]))


class PostgresUserRepository:
    """User repository implementation. Users carry their role ids."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn
        self._roles = PostgresRoleRepository(conn)
        self._overrides = PostgresUserPermissionRepository(conn)

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get user by id."""
        cur = await self._conn.execute(
            f"{_SELECT_USERS} WHERE u.id = %s GROUP BY u.id",
            (user_id,),
        )
        r = await cur.fetchone()
        return _row_to_user(r) if r else None

    async def get_with_roles_and_overrides(self, user_id: UUID) -> UserAccessSnapshot | None:
        """User, roles and overrides read on one connection."""
        user = await self.get_by_id(user_id)
        if not user:
            return None
        return UserAccessSnapshot(
            user=user,
            roles=await self._roles.list_for_user(user_id),
            overrides=await self._overrides.list_for_user(user_id),
        )

    async def list_all(self) -> list[User]:
        """List all users."""
        cur = await self._conn.execute(f"{_SELECT_USERS} GROUP BY u.id ORDER BY u.username")
        return [_row_to_user(r) for r in await cur.fetchall()]

    async def add_role(self, user_id: UUID, role_id: UUID) -> None:
        """Add role membership."""
        await self._conn.execute(
            "INSERT INTO user_role (user_id, role_id) VALUES (%s, %s) ON CONFLICT DO NOTHING",
            (user_id, role_id),
        )

    async def remove_role(self, user_id: UUID, role_id: UUID) -> None:
        """Remove role membership."""
        await self._conn.execute(
            "DELETE FROM user_role WHERE user_id = %s AND role_id = %s",
            (user_id, role_id),
        )

    async def update(self, user: User) -> None:
        """Update user attributes (not memberships)."""
        await self._conn.execute(
            "UPDATE app_user SET username=%s, is_active=%s, updated_at=now() WHERE id=%s",
            (user.username, user.is_active, user.id),
        )
