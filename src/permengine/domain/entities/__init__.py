"""Domain entities."""

from permengine.domain.entities.access_snapshot import UserAccessSnapshot
from permengine.domain.entities.audit_entry import PermissionAuditEntry
from permengine.domain.entities.permission import Permission
from permengine.domain.entities.role import Role
from permengine.domain.entities.user import User
from permengine.domain.entities.user_permission import UserPermission

__all__ = [
    "Permission",
    "PermissionAuditEntry",
    "Role",
    "User",
    "UserAccessSnapshot",
    "UserPermission",
]
