"""Audit sink that writes permission changes to a dedicated logger."""

import logging

from permengine.domain.entities import PermissionAuditEntry

AUDIT_LOGGER_NAME = "permengine.audit"


class LoggingAuditSink:
    """Emit one structured INFO record per permission change."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(AUDIT_LOGGER_NAME)

    async def record(self, entry: PermissionAuditEntry) -> None:
        self._logger.info(
            "%s by %s: user=%s role=%s permission=%s old=%s new=%s reason=%s",
            entry.kind,
            entry.performed_by,
            entry.user_id,
            entry.role_id,
            entry.permission_id,
            entry.old_value,
            entry.new_value,
            entry.reason,
            extra={
                "audit_kind": str(entry.kind),
                "performed_at": entry.performed_at.isoformat(),
            },
        )
