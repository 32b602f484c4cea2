"""Application ports - interfaces for external adapters."""

from permengine.application.ports.audit_sink import AuditSink
from permengine.application.ports.permission_cache import (
    CachedDecision,
    CachedEffective,
    PermissionCache,
)
from permengine.application.ports.unit_of_work import UnitOfWork, UnitOfWorkFactory

__all__ = [
    "AuditSink",
    "CachedDecision",
    "CachedEffective",
    "PermissionCache",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
