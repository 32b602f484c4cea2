"""User permission override repository port."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from permengine.domain.entities import UserPermission


class UserPermissionRepository(Protocol):
    """Port for per-user grant/deny overrides."""

    async def list_for_user(self, user_id: UUID) -> list[UserPermission]: ...

    async def list_all(self) -> list[UserPermission]: ...

    async def get_active(
        self, user_id: UUID, permission_id: UUID, now: datetime
    ) -> UserPermission | None:
        """The live (non-expired) override for the pair, if any."""
        ...

    async def create(self, override: UserPermission) -> UserPermission: ...

    async def bulk_create(self, overrides: list[UserPermission]) -> None: ...

    async def update(self, override: UserPermission) -> None: ...

    async def delete(self, override_id: UUID) -> None: ...

    async def delete_expired(self, now: datetime) -> list[UserPermission]:
        """Remove expired overrides and return what was removed."""
        ...
