"""User access snapshot - user with roles and overrides, read together."""

from dataclasses import dataclass, field

from permengine.domain.entities.role import Role
from permengine.domain.entities.user import User
from permengine.domain.entities.user_permission import UserPermission


@dataclass
class UserAccessSnapshot:
    """Everything needed to compute one user's effective permissions, except the catalog."""

    user: User
    roles: list[Role] = field(default_factory=list)
    overrides: list[UserPermission] = field(default_factory=list)
