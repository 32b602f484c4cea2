"""Repository ports."""

from permengine.application.ports.repositories.permission_repository import (
    PermissionRepository,
)
from permengine.application.ports.repositories.role_repository import RoleRepository
from permengine.application.ports.repositories.user_permission_repository import (
    UserPermissionRepository,
)
from permengine.application.ports.repositories.user_repository import UserRepository

__all__ = [
    "PermissionRepository",
    "RoleRepository",
    "UserPermissionRepository",
    "UserRepository",
]
