"""Domain exceptions."""

from uuid import UUID


class PermEngineError(Exception):
    """Base exception for the permission engine."""

    pass


class NotFound(PermEngineError):
    """Requested entity was not found."""

    pass


class ValidationError(PermEngineError):
    """Validation failed for input data."""

    pass


class MatrixUpdateRejected(ValidationError):
    """Matrix update referenced roles or permissions that do not exist.

    Raised before any part of the update is applied.
    """

    def __init__(
        self,
        missing_role_ids: list[UUID] | None = None,
        missing_permission_ids: list[UUID] | None = None,
    ) -> None:
        self.missing_role_ids = sorted(missing_role_ids or [], key=str)
        self.missing_permission_ids = sorted(missing_permission_ids or [], key=str)
        parts = []
        if self.missing_role_ids:
            parts.append(
                "roles not found: " + ", ".join(str(i) for i in self.missing_role_ids)
            )
        if self.missing_permission_ids:
            parts.append(
                "permissions not found: "
                + ", ".join(str(i) for i in self.missing_permission_ids)
            )
        super().__init__("; ".join(parts) or "matrix update rejected")


class HierarchyCycleError(ValidationError):
    """Parent assignment would introduce a cycle in the permission hierarchy."""

    pass
