"""Permission entity - a (resource, action) pair in the catalog."""

from dataclasses import dataclass
from uuid import UUID


@dataclass
class Permission:
    """Permission - resource/action pair, optionally nested under a parent permission."""

    id: UUID
    resource: str
    action: str
    category: str
    description: str = ""
    is_active: bool = True
    parent_permission_id: UUID | None = None

    @property
    def name(self) -> str:
        return f"{self.resource}.{self.action}"
