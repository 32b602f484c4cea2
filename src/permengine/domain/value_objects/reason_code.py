"""Reason codes attached to authorization decisions."""

from enum import StrEnum


class ReasonCode(StrEnum):
    """Why an authorization decision came out the way it did."""

    GRANTED = "granted"
    INHERITED = "inherited"
    INVALID_INPUT = "invalid_input"
    USER_NOT_FOUND = "user_not_found"
    USER_INACTIVE = "user_inactive"
    PERMISSION_NOT_FOUND = "permission_not_found"
    MISSING_PERMISSION = "missing_permission"
    INTERNAL_ERROR = "internal_error"


class DecisionSource(StrEnum):
    """Where a positive decision came from."""

    NONE = "none"
    DIRECT = "direct"
    INHERITANCE = "inheritance"
