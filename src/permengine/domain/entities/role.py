"""Role entity for RBAC."""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class Role:
    """Role - named bundle of permissions. Inactive roles grant nothing."""

    id: UUID
    name: str
    description: str = ""
    is_active: bool = True
    permission_ids: list[UUID] = field(default_factory=list)

    def has_permission(self, permission_id: UUID) -> bool:
        return permission_id in self.permission_ids
