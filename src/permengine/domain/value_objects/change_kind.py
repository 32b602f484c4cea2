"""Kinds of permission-affecting changes."""

from enum import StrEnum


class ChangeKind(StrEnum):
    """Mutation kinds that must be audited and invalidate cached permissions."""

    ROLE_PERMISSION_ASSIGNED = "role_permission_assigned"
    ROLE_PERMISSION_REMOVED = "role_permission_removed"
    ROLE_STATUS_CHANGED = "role_status_changed"
    USER_OVERRIDE_CREATED = "user_override_created"
    USER_OVERRIDE_UPDATED = "user_override_updated"
    USER_OVERRIDE_REMOVED = "user_override_removed"
    USER_ROLE_ASSIGNED = "user_role_assigned"
    USER_ROLE_REMOVED = "user_role_removed"
    USER_STATUS_CHANGED = "user_status_changed"
    PERMISSION_MODIFIED = "permission_modified"
