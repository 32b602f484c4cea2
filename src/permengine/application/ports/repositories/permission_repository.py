"""Permission repository port."""

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from permengine.domain.entities import Permission


class PermissionRepository(Protocol):
    """Port for the permission catalog."""

    async def get_by_id(self, permission_id: UUID) -> Permission | None: ...

    async def get_by_ids(self, permission_ids: Iterable[UUID]) -> list[Permission]: ...

    async def get_by_name(self, name: str) -> Permission | None: ...

    async def list_all(self) -> list[Permission]: ...

    async def update(self, permission: Permission) -> None: ...
