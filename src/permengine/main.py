"""Application entry point and composition root."""

from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from permengine import __version__
from permengine.application.ports import AuditSink, PermissionCache
from permengine.application.services.change_publisher import (
    CacheInvalidator,
    PermissionChangePublisher,
)
from permengine.application.use_cases.authorization.authorize import AuthorizationEngine
from permengine.application.use_cases.matrix.build_role_permission_matrix import (
    BuildRolePermissionMatrixUseCase,
)
from permengine.application.use_cases.matrix.build_user_permission_matrix import (
    BuildUserPermissionMatrixUseCase,
)
from permengine.application.use_cases.matrix.compare_permissions import (
    ComparePermissionsUseCase,
)
from permengine.application.use_cases.matrix.matrix_statistics import MatrixStatisticsUseCase
from permengine.application.use_cases.matrix.update_role_permissions import (
    BulkUpdateRolePermissionsUseCase,
    UpdateRolePermissionsUseCase,
)
from permengine.application.use_cases.matrix.update_user_overrides import (
    UpdateUserOverridesUseCase,
)
from permengine.application.use_cases.matrix.validate_matrix import ValidateMatrixUseCase
from permengine.application.use_cases.overrides.assign_override import AssignUserOverrideUseCase
from permengine.application.use_cases.overrides.cleanup_expired import (
    CleanupExpiredOverridesUseCase,
)
from permengine.application.use_cases.overrides.remove_override import RemoveUserOverrideUseCase
from permengine.application.use_cases.permissions.update_permission import (
    UpdatePermissionUseCase,
)
from permengine.application.use_cases.roles.set_role_active import SetRoleActiveUseCase
from permengine.application.use_cases.users.assign_role import AssignUserRoleUseCase
from permengine.application.use_cases.users.remove_role import RemoveUserRoleUseCase
from permengine.application.use_cases.users.set_user_active import SetUserActiveUseCase
from permengine.config import Settings, get_settings
from permengine.infrastructure.audit.logging_audit_sink import LoggingAuditSink
from permengine.infrastructure.audit.postgres_audit_sink import PostgresAuditSink
from permengine.infrastructure.cache.memory_cache import InMemoryPermissionCache
from permengine.infrastructure.cache.redis_cache import (
    RedisPermissionCache,
    create_redis_client,
)
from permengine.infrastructure.persistence.postgres.connection import create_pool
from permengine.infrastructure.persistence.postgres.unit_of_work import (
    create_uow_factory,
)
from permengine.logging_config import setup_logging


@dataclass
class AuthorizationServices:
    """Everything a transport layer needs, wired against one pool and one cache."""

    pool: AsyncConnectionPool
    cache: PermissionCache
    engine: AuthorizationEngine
    publisher: PermissionChangePublisher
    role_permission_matrix: BuildRolePermissionMatrixUseCase
    user_permission_matrix: BuildUserPermissionMatrixUseCase
    update_role_permissions: UpdateRolePermissionsUseCase
    bulk_update_role_permissions: BulkUpdateRolePermissionsUseCase
    update_user_overrides: UpdateUserOverridesUseCase
    compare_permissions: ComparePermissionsUseCase
    validate_matrix: ValidateMatrixUseCase
    matrix_statistics: MatrixStatisticsUseCase
    assign_override: AssignUserOverrideUseCase
    remove_override: RemoveUserOverrideUseCase
    cleanup_expired_overrides: CleanupExpiredOverridesUseCase
    assign_role: AssignUserRoleUseCase
    remove_role: RemoveUserRoleUseCase
    set_user_active: SetUserActiveUseCase
    update_permission: UpdatePermissionUseCase
    set_role_active: SetRoleActiveUseCase


def create_cache(settings: Settings) -> PermissionCache:
    if settings.cache_backend == "redis":
        return RedisPermissionCache(
            create_redis_client(settings.redis_url), prefix=settings.cache_key_prefix
        )
    return InMemoryPermissionCache(max_entries=settings.memory_cache_max_entries)


def create_engine(settings: Settings | None = None) -> AuthorizationServices:
    """Composition root - build all services from settings.

    The pool is returned unopened; call await services.pool.open() first.
    """
    settings = settings or get_settings()
    pool = create_pool(settings)
    uow_factory = create_uow_factory(pool)
    cache = create_cache(settings)
    audit_sink: AuditSink = (
        PostgresAuditSink(pool) if settings.audit_backend == "postgres" else LoggingAuditSink()
    )
    publisher = PermissionChangePublisher(CacheInvalidator(cache, uow_factory), audit_sink)

    engine = AuthorizationEngine(
        unit_of_work_factory=uow_factory,
        cache=cache,
        effective_ttl_seconds=settings.effective_cache_ttl_seconds,
        decision_ttl_seconds=settings.decision_cache_ttl_seconds,
        hierarchy_max_depth=settings.hierarchy_max_depth,
    )
    return AuthorizationServices(
        pool=pool,
        cache=cache,
        engine=engine,
        publisher=publisher,
        role_permission_matrix=BuildRolePermissionMatrixUseCase(uow_factory),
        user_permission_matrix=BuildUserPermissionMatrixUseCase(uow_factory),
        update_role_permissions=UpdateRolePermissionsUseCase(uow_factory, publisher),
        bulk_update_role_permissions=BulkUpdateRolePermissionsUseCase(uow_factory, publisher),
        update_user_overrides=UpdateUserOverridesUseCase(uow_factory, publisher),
        compare_permissions=ComparePermissionsUseCase(uow_factory),
        validate_matrix=ValidateMatrixUseCase(uow_factory),
        matrix_statistics=MatrixStatisticsUseCase(uow_factory),
        assign_override=AssignUserOverrideUseCase(uow_factory, publisher),
        remove_override=RemoveUserOverrideUseCase(uow_factory, publisher),
        cleanup_expired_overrides=CleanupExpiredOverridesUseCase(uow_factory, publisher),
        assign_role=AssignUserRoleUseCase(uow_factory, publisher),
        remove_role=RemoveUserRoleUseCase(uow_factory, publisher),
        set_user_active=SetUserActiveUseCase(uow_factory, publisher),
        update_permission=UpdatePermissionUseCase(uow_factory, publisher),
        set_role_active=SetRoleActiveUseCase(uow_factory, publisher),
    )


def main() -> None:
    """CLI entry point."""
    setup_logging(get_settings())
    print(f"permengine v{__version__}")
