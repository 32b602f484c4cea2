"""UserPermission entity - per-user grant/deny override."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from permengine.domain.value_objects import PermissionState

MAX_REASON_LENGTH = 500


@dataclass
class UserPermission:
    """Override of role-derived access for one (user, permission) pair.

    Expiry is evaluated at read time; an expired override is inert.
    """

    id: UUID
    user_id: UUID
    permission_id: UUID
    state: PermissionState
    created_at: datetime
    updated_at: datetime
    reason: str | None = None
    expires_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return self.expires_at is not None and self.expires_at <= now

    def is_active(self, now: datetime | None = None) -> bool:
        return not self.is_expired(now)
