"""Domain services - pure permission computations."""

from permengine.domain.services.effective_permissions import (
    EffectivePermissions,
    compute_effective,
    resolve_effective,
)
from permengine.domain.services.hierarchy import (
    CIRCULAR_REFERENCE,
    PARENT_NOT_FOUND,
    HierarchyViolation,
    PermissionCatalog,
    validate_hierarchy,
)

__all__ = [
    "CIRCULAR_REFERENCE",
    "PARENT_NOT_FOUND",
    "EffectivePermissions",
    "HierarchyViolation",
    "PermissionCatalog",
    "compute_effective",
    "resolve_effective",
    "validate_hierarchy",
]
