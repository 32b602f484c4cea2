"""Audit sink that appends entries to the permission_audit_log table."""

from uuid import uuid4

from psycopg_pool import AsyncConnectionPool

from permengine.domain.entities import PermissionAuditEntry


class PostgresAuditSink:
    """Writes each entry on its own connection, outside the caller's transaction."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def record(self, entry: PermissionAuditEntry) -> None:
        async with self._pool.connection() as conn:
            await conn.execute(
                "INSERT INTO permission_audit_log (id, kind, user_id, role_id, permission_id, "
                "performed_by, reason, old_value, new_value, performed_at) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
                (
                    uuid4(),
                    str(entry.kind),
                    entry.user_id,
                    entry.role_id,
                    entry.permission_id,
                    entry.performed_by,
                    entry.reason,
                    entry.old_value,
                    entry.new_value,
                    entry.performed_at,
                ),
            )
