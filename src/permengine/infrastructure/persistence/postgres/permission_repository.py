"""PostgreSQL permission repository implementation."""

from collections.abc import Iterable
from uuid import UUID

from psycopg import AsyncConnection

from permengine.domain.entities import Permission

PERMISSION_COLUMNS = "id, resource, action, category, description, is_active, parent_permission_id"


def row_to_permission(r: tuple) -> Permission:
    return Permission(
        id=r[0],
        resource=r[1],
        action=r[2],
        category=r[3],
        description=r[4] or "",
        is_active=r[5],
        parent_permission_id=r[6],
    )


class PostgresPermissionRepository:
    """Permission catalog repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, permission_id: UUID) -> Permission | None:
        """Get permission by id."""
        cur = await self._conn.execute(
            f"SELECT {PERMISSION_COLUMNS} FROM permission WHERE id = %s",
            (permission_id,),
        )
        r = await cur.fetchone()
        return row_to_permission(r) if r else None

    async def get_by_ids(self, permission_ids: Iterable[UUID]) -> list[Permission]:
        """Get the permissions that exist among the given ids."""
        ids = list(permission_ids)
        if not ids:
            return []
        cur = await self._conn.execute(
            f"SELECT {PERMISSION_COLUMNS} FROM permission WHERE id = ANY(%s)",
            (ids,),
        )
        return [row_to_permission(r) for r in await cur.fetchall()]

    async def get_by_name(self, name: str) -> Permission | None:
        """Get permission by "resource.action" name."""
        resource, _, action = name.partition(".")
        cur = await self._conn.execute(
            f"SELECT {PERMISSION_COLUMNS} FROM permission WHERE resource = %s AND action = %s",
            (resource, action),
        )
        r = await cur.fetchone()
        return row_to_permission(r) if r else None

    async def list_all(self) -> list[Permission]:
        """List the whole catalog, inactive permissions included."""
        cur = await self._conn.execute(
            f"SELECT {PERMISSION_COLUMNS} FROM permission ORDER BY category, resource, action"
        )
        return [row_to_permission(r) for r in await cur.fetchall()]

    async def update(self, permission: Permission) -> None:
        """Update permission."""
        await self._conn.execute(
            "UPDATE permission SET category=%s, description=%s, is_active=%s, "
            "parent_permission_id=%s, updated_at=now() WHERE id=%s",
            (
                permission.category,
                permission.description,
                permission.is_active,
                permission.parent_permission_id,
                permission.id,
            ),
        )
