"""Permission audit entry - append-only record of a permission mutation."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from permengine.domain.value_objects import ChangeKind


@dataclass(frozen=True)
class PermissionAuditEntry:
    """One assignment/removal/modification event."""

    kind: ChangeKind
    performed_by: str
    user_id: UUID | None = None
    role_id: UUID | None = None
    permission_id: UUID | None = None
    reason: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    performed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
