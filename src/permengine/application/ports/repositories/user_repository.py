"""User repository port."""

from typing import Protocol
from uuid import UUID

from permengine.domain.entities import User, UserAccessSnapshot


class UserRepository(Protocol):
    """Port for users and their role memberships."""

    async def get_by_id(self, user_id: UUID) -> User | None: ...

    async def get_with_roles_and_overrides(self, user_id: UUID) -> UserAccessSnapshot | None: ...

    async def list_all(self) -> list[User]: ...

    async def add_role(self, user_id: UUID, role_id: UUID) -> None: ...

    async def remove_role(self, user_id: UUID, role_id: UUID) -> None: ...

    async def update(self, user: User) -> None: ...
