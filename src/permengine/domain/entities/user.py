"""User entity."""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class User:
    """User - holds role assignments. Inactive users are authorized for nothing."""

    id: UUID
    username: str
    is_active: bool = True
    role_ids: list[UUID] = field(default_factory=list)
