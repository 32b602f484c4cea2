"""PostgreSQL user permission override repository implementation."""

from datetime import datetime
from uuid import UUID

from psycopg import AsyncConnection

from permengine.domain.entities import UserPermission
from permengine.domain.value_objects import PermissionState

_COLUMNS = (
    "id, user_id, permission_id, state, created_at, updated_at, "
    "reason, expires_at, created_by, updated_by"
)


def _row_to_override(r: tuple) -> UserPermission:
    return UserPermission(
        id=r[0],
        user_id=r[1],
        permission_id=r[2],
        state=PermissionState(r[3]),
        created_at=r[4],
        updated_at=r[5],
        reason=r[6],
        expires_at=r[7],
        created_by=r[8],
        updated_by=r[9],
    )


def _override_params(o: UserPermission) -> tuple:
    return (
        o.id,
        o.user_id,
        o.permission_id,
        str(o.state),
        o.created_at,
        o.updated_at,
        o.reason,
        o.expires_at,
        o.created_by,
        o.updated_by,
    )


_INSERT = (
    f"INSERT INTO user_permission ({_COLUMNS}) "
    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"
)


class PostgresUserPermissionRepository:
    """Override repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def list_for_user(self, user_id: UUID) -> list[UserPermission]:
        """All overrides of a user, expired ones included."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_permission WHERE user_id = %s",
            (user_id,),
        )
        return [_row_to_override(r) for r in await cur.fetchall()]

    async def list_all(self) -> list[UserPermission]:
        """List all overrides."""
        cur = await self._conn.execute(f"SELECT {_COLUMNS} FROM user_permission")
        return [_row_to_override(r) for r in await cur.fetchall()]

    async def get_active(
        self, user_id: UUID, permission_id: UUID, now: datetime
    ) -> UserPermission | None:
        """Most recently updated non-expired override for the pair."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_permission "
            "WHERE user_id = %s AND permission_id = %s "
            "AND (expires_at IS NULL OR expires_at > %s) "
            "ORDER BY updated_at DESC LIMIT 1",
            (user_id, permission_id, now),
        )
        r = await cur.fetchone()
        return _row_to_override(r) if r else None

    async def create(self, override: UserPermission) -> UserPermission:
        """Create override."""
        await self._conn.execute(_INSERT, _override_params(override))
        return override

    async def bulk_create(self, overrides: list[UserPermission]) -> None:
        """Create many overrides in one round of statements."""
        if not overrides:
            return
        async with self._conn.cursor() as cur:
            await cur.executemany(_INSERT, [_override_params(o) for o in overrides])

    async def update(self, override: UserPermission) -> None:
        """Update override state, reason and expiry."""
        await self._conn.execute(
            "UPDATE user_permission SET state=%s, reason=%s, expires_at=%s, "
            "updated_at=%s, updated_by=%s WHERE id=%s",
            (
                str(override.state),
                override.reason,
                override.expires_at,
                override.updated_at,
                override.updated_by,
                override.id,
            ),
        )

    async def delete(self, override_id: UUID) -> None:
        """Delete override."""
        await self._conn.execute(
            "DELETE FROM user_permission WHERE id = %s",
            (override_id,),
        )

    async def delete_expired(self, now: datetime) -> list[UserPermission]:
        """Delete expired overrides and return them."""
        cur = await self._conn.execute(
            f"DELETE FROM user_permission WHERE expires_at IS NOT NULL AND expires_at <= %s "
            f"RETURNING {_COLUMNS}",
            (now,),
        )
        return [_row_to_override(r) for r in await cur.fetchall()]
