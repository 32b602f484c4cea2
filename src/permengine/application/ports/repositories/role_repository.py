"""Role repository port."""

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from permengine.domain.entities import Role


class RoleRepository(Protocol):
    """Port for roles and their permission assignments.

    Roles are returned with permission_ids populated.
    """

    async def get_by_id(self, role_id: UUID) -> Role | None: ...

    async def get_by_ids(self, role_ids: Iterable[UUID]) -> list[Role]: ...

    async def list_all(self) -> list[Role]: ...

    async def list_for_user(self, user_id: UUID) -> list[Role]: ...

    async def list_user_ids(self, role_id: UUID) -> list[UUID]: ...

    async def replace_permissions(self, role_id: UUID, permission_ids: list[UUID]) -> None:
        """Clear and re-add the role's assignments as one unit."""
        ...

    async def update(self, role: Role) -> None: ...
