"""Permission matrix DTOs - grids, comparisons, validation and statistics."""

from dataclasses import dataclass, field
from uuid import UUID

from permengine.domain.entities import Permission, Role, UserPermission
from permengine.domain.value_objects import ValidationSeverity


@dataclass
class RolePermissionMatrix:
    """Roles x permissions grid of booleans."""

    roles: list[Role]
    permissions: list[Permission]
    grid: dict[UUID, dict[UUID, bool]]
    categories: list[str] = field(default_factory=list)

    def is_assigned(self, role_id: UUID, permission_id: UUID) -> bool:
        return self.grid.get(role_id, {}).get(permission_id, False)

    @property
    def total_assignments(self) -> int:
        return sum(sum(1 for v in row.values() if v) for row in self.grid.values())


@dataclass
class UserPermissionMatrix:
    """One user's role-derived permissions, live overrides and final effective set."""

    user_id: UUID
    roles: list[Role]
    role_permissions: list[Permission]
    overrides: list[UserPermission]
    effective_permissions: list[Permission]


@dataclass
class PermissionEntity:
    """Side of a comparison - a role or a user."""

    id: UUID
    name: str
    type: str
    permission_count: int


@dataclass
class PermissionComparison:
    """Access-review comparison of two permission holders."""

    first: PermissionEntity
    second: PermissionEntity
    common: list[Permission]
    only_first: list[Permission]
    only_second: list[Permission]
    similarity_percentage: float
    total_unique_permissions: int


@dataclass(frozen=True)
class ValidationIssue:
    """Error or warning found while validating the matrix."""

    code: str
    message: str
    entity_type: str
    entity_ids: tuple[UUID, ...]
    severity: ValidationSeverity | None = None
    suggested_action: str | None = None


@dataclass
class ValidationSummary:
    error_count: int
    warning_count: int
    roles_validated: int
    permissions_validated: int
    assignments_validated: int
    overrides_validated: int
    checks_performed: list[str]


@dataclass
class MatrixValidationResult:
    """Errors need an operator; warnings are advisory."""

    errors: list[ValidationIssue]
    warnings: list[ValidationIssue]
    summary: ValidationSummary

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class SystemStatistics:
    total_permissions: int
    active_permissions: int
    inactive_permissions: int
    total_roles: int
    active_roles: int
    total_users: int
    total_role_permission_assignments: int
    total_user_overrides: int
    average_permissions_per_role: float


@dataclass
class RoleStatistics:
    role_id: UUID
    role_name: str
    permission_count: int
    user_count: int
    permissions_by_category: dict[str, int]


@dataclass
class PermissionUsage:
    permission_id: UUID
    permission_name: str
    role_count: int
    user_count: int
    override_count: int
    role_usage_percentage: float
    user_usage_percentage: float


@dataclass
class CategoryStatistics:
    category: str
    permission_count: int
    role_assignment_count: int
    override_count: int
    average_role_usage: float


@dataclass
class OverrideStatistics:
    total: int
    grants: int
    denies: int
    active: int
    expired: int
    users_with_overrides: int
    average_per_user: float
    common_reasons: dict[str, int]


@dataclass
class MatrixStatistics:
    """Read-side report computed from a single data snapshot."""

    system: SystemStatistics
    roles: list[RoleStatistics]
    permission_usage: list[PermissionUsage]
    categories: list[CategoryStatistics]
    overrides: OverrideStatistics
