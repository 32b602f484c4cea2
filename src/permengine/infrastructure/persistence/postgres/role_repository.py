"""PostgreSQL role repository implementation."""

from collections.abc import Iterable
from uuid import UUID

from psycopg import AsyncConnection

from permengine.domain.entities import Role

_SELECT_ROLES = (
    "SELECT r.id, r.name, r.description, r.is_active, "
    "COALESCE(array_agg(rp.permission_id ORDER BY rp.permission_id) "
    "FILTER (WHERE rp.permission_id IS NOT NULL), '{}') "
    "FROM role r LEFT JOIN role_permission rp ON rp.role_id = r.id"
)


def _row_to_role(r: tuple) -> Role:
    return Role(
        id=r[0],
        name=r[1],
        description=r[2] or "",
        is_active=r[3],
        permission_ids=list(r[4]),
    )


class PostgresRoleRepository:
    """Role repository implementation. Roles carry their permission ids."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, role_id: UUID) -> Role | None:
        """Get role by id."""
        cur = await self._conn.execute(
            f"{_SELECT_ROLES} WHERE r.id = %s GROUP BY r.id",
            (role_id,),
        )
        r = await cur.fetchone()
        return _row_to_role(r) if r else None

    async def get_by_ids(self, role_ids: Iterable[UUID]) -> list[Role]:
        """Get the roles that exist among the given ids."""
        ids = list(role_ids)
        if not ids:
            return []
        cur = await self._conn.execute(
            f"{_SELECT_ROLES} WHERE r.id = ANY(%s) GROUP BY r.id",
            (ids,),
        )
        return [_row_to_role(r) for r in await cur.fetchall()]

    async def list_all(self) -> list[Role]:
        """List all roles."""
        cur = await self._conn.execute(f"{_SELECT_ROLES} GROUP BY r.id ORDER BY r.name")
        return [_row_to_role(r) for r in await cur.fetchall()]

    async def list_for_user(self, user_id: UUID) -> list[Role]:
        """Roles the user is a member of."""
        cur = await self._conn.execute(
            f"{_SELECT_ROLES} JOIN user_role ur ON ur.role_id = r.id "
            "WHERE ur.user_id = %s GROUP BY r.id ORDER BY r.name",
            (user_id,),
        )
        return [_row_to_role(r) for r in await cur.fetchall()]

    async def list_user_ids(self, role_id: UUID) -> list[UUID]:
        """Ids of users holding the role."""
        cur = await self._conn.execute(
            "SELECT user_id FROM user_role WHERE role_id = %s",
            (role_id,),
        )
        return [r[0] for r in await cur.fetchall()]

    async def replace_permissions(self, role_id: UUID, permission_ids: list[UUID]) -> None:
        """Clear and re-add assignments inside the unit of work's transaction."""
        await self._conn.execute("DELETE FROM role_permission WHERE role_id = %s", (role_id,))
        if permission_ids:
            async with self._conn.cursor() as cur:
                await cur.executemany(
                    "INSERT INTO role_permission (role_id, permission_id) VALUES (%s, %s)",
                    [(role_id, pid) for pid in permission_ids],
                )
        await self._conn.execute(
            "UPDATE role SET updated_at = now() WHERE id = %s",
            (role_id,),
        )

    async def update(self, role: Role) -> None:
        """Update role attributes (not assignments)."""
        await self._conn.execute(
            "UPDATE role SET name=%s, description=%s, is_active=%s, updated_at=now() WHERE id=%s",
            (role.name, role.description, role.is_active, role.id),
        )
