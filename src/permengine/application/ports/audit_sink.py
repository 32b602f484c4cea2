"""Audit sink port - receives every permission mutation."""

from typing import Protocol

from permengine.domain.entities import PermissionAuditEntry


class AuditSink(Protocol):
    """Port for the external permission audit log."""

    async def record(self, entry: PermissionAuditEntry) -> None: ...
