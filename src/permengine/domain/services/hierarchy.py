"""Permission catalog - id-indexed arena of permissions and their parent hierarchy.

Parent links are stored as ids, never as object references, so every walk
can be bounded with a visited set. Nothing here raises on malformed data:
validation returns violations, ancestor resolution fails closed.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from uuid import UUID

from permengine.domain.entities import Permission
from permengine.domain.value_objects import ValidationSeverity

PARENT_NOT_FOUND = "PARENT_NOT_FOUND"
CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"

DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class HierarchyViolation:
    """Structural problem in the permission hierarchy."""

    code: str
    severity: ValidationSeverity
    message: str
    permission_ids: tuple[UUID, ...]
    permission_names: tuple[str, ...]


class PermissionCatalog:
    """All known permissions, indexed by id and by name."""

    def __init__(
        self,
        permissions: Iterable[Permission],
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._by_id: dict[UUID, Permission] = {}
        self._by_name: dict[str, Permission] = {}
        self._max_depth = max_depth
        for permission in permissions:
            self._by_id[permission.id] = permission
            existing = self._by_name.get(permission.name)
            # (resource, action) is unique; an active entry shadows a stale one
            if existing is None or (permission.is_active and not existing.is_active):
                self._by_name[permission.name] = permission

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Permission]:
        return iter(self._by_id.values())

    def __contains__(self, permission_id: object) -> bool:
        return permission_id in self._by_id

    def get(self, permission_id: UUID) -> Permission | None:
        return self._by_id.get(permission_id)

    def find_by_name(self, name: str) -> Permission | None:
        return self._by_name.get(name.strip()) if name else None

    def categories(self) -> list[str]:
        return sorted({p.category for p in self._by_id.values()})

    def validate_hierarchy(self) -> list[HierarchyViolation]:
        """Report dangling parents and cycles.

        Every node is walked at most once, so the check is linear in the
        catalog size and terminates on any input. Each distinct cycle is
        reported once, naming all of its members.
        """
        violations: list[HierarchyViolation] = []
        for permission in self._by_id.values():
            parent_id = permission.parent_permission_id
            if parent_id is not None and parent_id not in self._by_id:
                violations.append(
                    HierarchyViolation(
                        code=PARENT_NOT_FOUND,
                        severity=ValidationSeverity.HIGH,
                        message=(
                            f"Permission '{permission.name}' references "
                            f"non-existent parent permission {parent_id}"
                        ),
                        permission_ids=(permission.id,),
                        permission_names=(permission.name,),
                    )
                )

        resolved: set[UUID] = set()
        for start in self._by_id:
            if start in resolved:
                continue
            path: dict[UUID, int] = {}
            order: list[UUID] = []
            current: UUID | None = start
            while current is not None and current in self._by_id and current not in resolved:
                if current in path:
                    members = order[path[current]:]
                    names = tuple(self._by_id[m].name for m in members)
                    violations.append(
                        HierarchyViolation(
                            code=CIRCULAR_REFERENCE,
                            severity=ValidationSeverity.CRITICAL,
                            message=(
                                "Circular reference in permission hierarchy: "
                                + " -> ".join(names + (names[0],))
                            ),
                            permission_ids=tuple(members),
                            permission_names=names,
                        )
                    )
                    break
                path[current] = len(order)
                order.append(current)
                current = self._by_id[current].parent_permission_id
            resolved.update(order)
        return violations

    def resolve_ancestors(self, permission: Permission) -> list[Permission]:
        """Active ancestors of a permission, nearest first.

        Fails closed: a chain that revisits a node, points at a missing
        parent or exceeds the depth bound yields no ancestors at all. The
        walk stops at the first inactive ancestor.
        """
        ancestors: list[Permission] = []
        visited = {permission.id}
        parent_id = permission.parent_permission_id
        while parent_id is not None:
            if parent_id in visited or len(ancestors) >= self._max_depth:
                return []
            parent = self._by_id.get(parent_id)
            if parent is None:
                return []
            if not parent.is_active:
                break
            visited.add(parent_id)
            ancestors.append(parent)
            parent_id = parent.parent_permission_id
        return ancestors

    def would_create_cycle(self, permission_id: UUID, new_parent_id: UUID | None) -> bool:
        """True if setting new_parent_id as the parent of permission_id closes a loop."""
        visited: set[UUID] = set()
        current = new_parent_id
        while current is not None:
            if current == permission_id:
                return True
            if current in visited:
                # Pre-existing cycle upstream that does not include permission_id
                return False
            visited.add(current)
            parent = self._by_id.get(current)
            current = parent.parent_permission_id if parent else None
        return False


def validate_hierarchy(permissions: Iterable[Permission]) -> list[HierarchyViolation]:
    """Validate a permission list without keeping a catalog around."""
    return PermissionCatalog(permissions).validate_hierarchy()
