"""Override states for per-user permission deviations."""

from enum import StrEnum


class PermissionState(StrEnum):
    """Whether a user override grants or denies a permission."""

    GRANT = "grant"
    DENY = "deny"
