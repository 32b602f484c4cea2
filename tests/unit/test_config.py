"""Unit tests for settings and service wiring."""

import pytest

from permengine.application.use_cases.roles.set_role_active import SetRoleActiveUseCase
from permengine.config import Settings, get_settings
from permengine.infrastructure.audit.logging_audit_sink import LoggingAuditSink
from permengine.infrastructure.audit.postgres_audit_sink import PostgresAuditSink
from permengine.infrastructure.cache.memory_cache import InMemoryPermissionCache
from permengine.infrastructure.cache.redis_cache import RedisPermissionCache
from permengine.main import create_cache, create_engine


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.cache_backend == "memory"
    assert settings.effective_cache_ttl_seconds == 900
    assert settings.decision_cache_ttl_seconds == 600
    assert settings.hierarchy_max_depth == 64
    assert settings.memory_cache_max_entries == 10_000
    assert settings.audit_backend == "log"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CACHE_BACKEND", "redis")
    monkeypatch.setenv("DECISION_CACHE_TTL_SECONDS", "30")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.cache_backend == "redis"
        assert settings.decision_cache_ttl_seconds == 30
    finally:
        get_settings.cache_clear()


def test_invalid_ttl_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, effective_cache_ttl_seconds=0)


def test_create_cache_backends() -> None:
    assert isinstance(create_cache(Settings(_env_file=None)), InMemoryPermissionCache)
    bounded = create_cache(Settings(_env_file=None, memory_cache_max_entries=5))
    assert bounded._max_entries == 5
    redis_settings = Settings(_env_file=None, cache_backend="redis", cache_key_prefix="test")
    assert isinstance(create_cache(redis_settings), RedisPermissionCache)


@pytest.mark.asyncio
async def test_create_engine_wires_services() -> None:
    """Wiring only; the pool is not opened."""
    services = create_engine(Settings(_env_file=None, hierarchy_max_depth=8))

    assert isinstance(services.cache, InMemoryPermissionCache)
    assert services.engine._max_depth == 8
    assert isinstance(services.set_role_active, SetRoleActiveUseCase)
    assert isinstance(services.publisher._audit_sink, LoggingAuditSink)

    postgres = create_engine(Settings(_env_file=None, audit_backend="postgres"))
    assert isinstance(postgres.publisher._audit_sink, PostgresAuditSink)
