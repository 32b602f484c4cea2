"""Unit tests for AuthorizationEngine."""

import asyncio
from contextlib import asynccontextmanager
from uuid import uuid4

import pytest

from permengine.application.services.change_publisher import PermissionChange
from permengine.application.use_cases.authorization.authorize import AuthorizationEngine
from permengine.domain.value_objects import ChangeKind, DecisionSource, PermissionState, ReasonCode
from permengine.infrastructure.cache.memory_cache import InMemoryPermissionCache
from tests.conftest import FakeStore, make_uow_factory


@pytest.fixture
def docs(store: FakeStore):
    """Docs.Admin > Docs.Write > Docs.Read, plus an unrelated Reports.View."""
    admin = store.add_permission("Docs", "Admin", category="Documents")
    write = store.add_permission("Docs", "Write", category="Documents", parent=admin)
    read = store.add_permission("Docs", "Read", category="Documents", parent=write)
    reports = store.add_permission("Reports", "View", category="Reporting")
    return admin, write, read, reports


@pytest.fixture
def engine(uow_factory, cache) -> AuthorizationEngine:
    return AuthorizationEngine(uow_factory, cache)


class BrokenCache:
    """Cache whose backend is down."""

    async def current_version(self, user_id):
        raise ConnectionError("cache down")

    async def get_effective(self, user_id):
        raise ConnectionError("cache down")

    async def set_effective(self, user_id, permissions, denied, ttl_seconds, version):
        raise ConnectionError("cache down")

    async def get_decision(self, user_id, permission, version):
        raise ConnectionError("cache down")

    async def set_decision(self, user_id, permission, decision, ttl_seconds, version):
        raise ConnectionError("cache down")

    async def invalidate(self, user_id):
        raise ConnectionError("cache down")

    async def invalidate_all(self):
        raise ConnectionError("cache down")


def patched_uow_factory(store: FakeStore, patch):
    """Real fake factory, with `patch(uow)` applied to each unit of work."""
    base = make_uow_factory(store)

    @asynccontextmanager
    async def factory():
        async with base() as uow:
            patch(uow)
            yield uow

    return factory


@pytest.mark.asyncio
async def test_direct_grant(store, docs, engine):
    """A permission held through a role is granted directly."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    decision = await engine.authorize(user.id, "Docs.Write")

    assert decision.authorized is True
    assert decision.reason_code == ReasonCode.GRANTED
    assert decision.source == DecisionSource.DIRECT
    assert decision.effective_permissions == {"Docs.Write"}


@pytest.mark.asyncio
async def test_inherited_from_parent(store, docs, engine):
    """Holding Docs.Admin satisfies Docs.Write through the hierarchy."""
    admin, _, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Admins", [admin])])

    decision = await engine.authorize(user.id, "Docs.Write")

    assert decision.authorized is True
    assert decision.reason_code == ReasonCode.INHERITED
    assert decision.source == DecisionSource.INHERITANCE
    assert decision.inherited_from == "Docs.Admin"
    assert "Docs.Admin" in decision.reason


@pytest.mark.asyncio
async def test_inheritance_walks_multiple_levels(store, docs, engine):
    """Docs.Read is satisfied by its grandparent."""
    admin, _, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Admins", [admin])])

    decision = await engine.authorize(user.id, "Docs.Read")

    assert decision.authorized is True
    assert decision.inherited_from == "Docs.Admin"


@pytest.mark.asyncio
async def test_child_does_not_grant_parent(store, docs, engine):
    """Holding Docs.Write does not give Docs.Admin."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    decision = await engine.authorize(user.id, "Docs.Admin")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.MISSING_PERMISSION
    assert decision.source == DecisionSource.NONE


@pytest.mark.asyncio
async def test_deny_blocks_inheritance(store, docs, engine):
    """An explicit deny on the child wins over a granted parent."""
    admin, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Admins", [admin])])
    store.add_override(user, write, PermissionState.DENY)

    decision = await engine.authorize(user.id, "Docs.Write")

    assert decision.authorized is False
    assert "explicitly denied" in decision.reason


@pytest.mark.asyncio
async def test_inactive_parent_stops_inheritance(store, docs, engine):
    """A deactivated parent grants nothing to its children."""
    admin, _, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Admins", [admin])])
    store.permissions[admin.id].is_active = False

    decision = await engine.authorize(user.id, "Docs.Write")

    assert decision.authorized is False


@pytest.mark.asyncio
async def test_cyclic_hierarchy_fails_closed(store, engine):
    """A permission inside a parent loop is never inherited."""
    a = store.add_permission("Loop", "A")
    b = store.add_permission("Loop", "B", parent=a)
    store.permissions[a.id].parent_permission_id = b.id
    other = store.add_permission("Other", "Thing")
    user = store.add_user("alice", roles=[store.add_role("R", [other])])

    decision = await engine.authorize(user.id, "Loop.A")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.MISSING_PERMISSION


@pytest.mark.asyncio
async def test_user_not_found(docs, engine):
    decision = await engine.authorize(uuid4(), "Docs.Read")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.USER_NOT_FOUND
    assert decision.reason == "User not found"


@pytest.mark.asyncio
async def test_inactive_user(store, docs, engine):
    """Inactive users are denied even for permissions their roles carry."""
    admin, _, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Admins", [admin])], is_active=False)

    decision = await engine.authorize(user.id, "Docs.Admin")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.USER_INACTIVE


@pytest.mark.asyncio
@pytest.mark.parametrize("permission", ["", "   ", "DocsRead", ".Read", "Docs."])
async def test_invalid_input(store, docs, engine, permission):
    """Malformed names are denied without touching the store."""
    user = store.add_user("alice")

    decision = await engine.authorize(user.id, permission)

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.INVALID_INPUT
    assert decision.reason.startswith("Invalid input")
    assert store.calls["users.get_by_id"] == 0


@pytest.mark.asyncio
async def test_unknown_permission(store, docs, engine):
    user = store.add_user("alice")

    decision = await engine.authorize(user.id, "Nope.Never")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.PERMISSION_NOT_FOUND


@pytest.mark.asyncio
async def test_inactive_permission_not_found(store, docs, engine):
    _, _, _, reports = docs
    store.permissions[reports.id].is_active = False
    user = store.add_user("alice", roles=[store.add_role("R", [reports])])

    decision = await engine.authorize(user.id, "Reports.View")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.PERMISSION_NOT_FOUND
    assert "is not active" in decision.reason


@pytest.mark.asyncio
async def test_resource_action_form(store, docs, engine):
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    decision = await engine.authorize_resource_action(user.id, " Docs ", "Write")

    assert decision.authorized is True
    assert decision.permission == "Docs.Write"


@pytest.mark.asyncio
async def test_resource_action_rejects_blank_action(store, docs, engine):
    user = store.add_user("alice")

    decision = await engine.authorize_resource_action(user.id, "Docs", "")

    assert decision.reason_code == ReasonCode.INVALID_INPUT


@pytest.mark.asyncio
async def test_authorize_any(store, docs, engine):
    """Any-of passes on one match and lists what matched."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    decision = await engine.authorize_any(user.id, ["Reports.View", "Docs.Write"])

    assert decision.authorized is True
    assert decision.matched == ("Docs.Write",)
    assert decision.missing == ("Reports.View",)
    assert decision.reason == "Matched: Docs.Write"


@pytest.mark.asyncio
async def test_authorize_any_none_match(store, docs, engine):
    user = store.add_user("alice")

    decision = await engine.authorize_any(user.id, ["Reports.View", "Docs.Write"])

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.MISSING_PERMISSION
    assert "does not have any" in decision.reason


@pytest.mark.asyncio
async def test_authorize_all_lists_missing(store, docs, engine):
    """All-of fails and names exactly the missing permissions."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    decision = await engine.authorize_all(user.id, ["Docs.Write", "Docs.Read", "Reports.View"])

    assert decision.authorized is False
    assert decision.missing == ("Reports.View",)
    assert decision.reason == "User is missing the following permissions: Reports.View"


@pytest.mark.asyncio
async def test_authorize_all_success(store, docs, engine):
    _, write, _, reports = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write, reports])])

    decision = await engine.authorize_all(user.id, ["Docs.Write", "Reports.View"])

    assert decision.authorized is True
    assert decision.reason_code == ReasonCode.GRANTED
    assert decision.missing == ()


@pytest.mark.asyncio
async def test_authorize_all_empty_list(store, engine):
    user = store.add_user("alice")

    decision = await engine.authorize_all(user.id, [])

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.INVALID_INPUT


@pytest.mark.asyncio
async def test_multi_checks_load_effective_set_once(store, docs, engine):
    """authorize_all and bulk_authorize compute the effective set a single time."""
    _, write, _, reports = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write, reports])])

    await engine.authorize_all(user.id, ["Docs.Write", "Docs.Read", "Reports.View", "Docs.Admin"])

    assert store.calls["users.get_with_roles_and_overrides"] == 1
    assert store.calls["permissions.list_all"] == 1


@pytest.mark.asyncio
async def test_bulk_authorize(store, docs, engine):
    """Each name answered independently; invalid names do not spoil the rest."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    results = await engine.bulk_authorize(user.id, ["Docs.Write", "Docs.Read", "Docs.Admin", "bad"])

    assert results["Docs.Write"].authorized is True
    assert results["Docs.Read"].authorized is True
    assert results["Docs.Read"].source == DecisionSource.INHERITANCE
    assert results["Docs.Admin"].authorized is False
    assert results["bad"].reason_code == ReasonCode.INVALID_INPUT
    assert store.calls["users.get_with_roles_and_overrides"] == 1


@pytest.mark.asyncio
async def test_bulk_authorize_unknown_user(docs, engine):
    results = await engine.bulk_authorize(uuid4(), ["Docs.Write", "Docs.Read"])

    assert {d.reason_code for d in results.values()} == {ReasonCode.USER_NOT_FOUND}


@pytest.mark.asyncio
async def test_second_call_served_from_cache(store, docs, engine):
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    first = await engine.authorize(user.id, "Docs.Write")
    second = await engine.authorize(user.id, "Docs.Write")

    assert first == second
    assert store.calls["users.get_with_roles_and_overrides"] == 1


@pytest.mark.asyncio
async def test_get_effective_permissions(store, docs, engine):
    _, write, _, reports = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write, reports])])
    store.add_override(user, reports, PermissionState.DENY)

    assert await engine.get_effective_permissions(user.id) == {"Docs.Write"}
    assert await engine.get_effective_permissions(uuid4()) == frozenset()


@pytest.mark.asyncio
async def test_store_error_is_internal_error(store, docs, cache):
    """A failing repository yields a denial, never a grant."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    async def boom():
        raise RuntimeError("connection reset")

    def patch(uow):
        uow.permissions.list_all = boom

    engine = AuthorizationEngine(patched_uow_factory(store, patch), cache)

    decision = await engine.authorize(user.id, "Docs.Write")

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.INTERNAL_ERROR
    assert store.rollbacks == 1


@pytest.mark.asyncio
async def test_store_error_in_bulk_denies_all(store, docs, cache):
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    async def boom(user_id):
        raise RuntimeError("connection reset")

    def patch(uow):
        uow.users.get_with_roles_and_overrides = boom

    engine = AuthorizationEngine(patched_uow_factory(store, patch), cache)

    results = await engine.bulk_authorize(user.id, ["Docs.Write", "Docs.Read"])

    assert all(not d.authorized for d in results.values())
    assert {d.reason_code for d in results.values()} == {ReasonCode.INTERNAL_ERROR}


@pytest.mark.asyncio
async def test_cache_outage_still_decides(store, docs, uow_factory):
    """With the cache down every answer is computed from the store."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])
    engine = AuthorizationEngine(uow_factory, BrokenCache())

    granted = await engine.authorize(user.id, "Docs.Read")
    denied = await engine.authorize(user.id, "Docs.Admin")

    assert granted.authorized is True
    assert denied.authorized is False
    assert denied.reason_code == ReasonCode.MISSING_PERMISSION


@pytest.mark.asyncio
async def test_cancellation_leaves_nothing_cached(store, docs, cache):
    """Cancelled mid-load: the error propagates and no partial set is cached."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    async def cancelled():
        raise asyncio.CancelledError()

    def patch(uow):
        uow.permissions.list_all = cancelled

    engine = AuthorizationEngine(patched_uow_factory(store, patch), cache)

    with pytest.raises(asyncio.CancelledError):
        await engine.authorize(user.id, "Docs.Write")

    assert await cache.get_effective(user.id) is None
    assert store.rollbacks == 1


@pytest.mark.asyncio
async def test_invalidation_during_load_discards_stale_write(store, docs, cache):
    """A revocation landing while the snapshot is read must not be undone by the cache."""
    _, write, _, _ = docs
    editor = store.add_role("Editor", [write])
    user = store.add_user("alice", roles=[editor])

    def patch(uow):
        original = uow.users.get_with_roles_and_overrides

        async def snapshot_then_revoke(user_id):
            snapshot = await original(user_id)
            store.users[user_id].role_ids.clear()
            await cache.invalidate(user_id)
            return snapshot

        uow.users.get_with_roles_and_overrides = snapshot_then_revoke

    racing = AuthorizationEngine(patched_uow_factory(store, patch), cache)
    await racing.authorize(user.id, "Docs.Write")

    assert await cache.get_effective(user.id) is None
    fresh = AuthorizationEngine(make_uow_factory(store), cache)
    decision = await fresh.authorize(user.id, "Docs.Write")
    assert decision.authorized is False


@pytest.mark.asyncio
async def test_revocation_visible_after_publish(store, docs, engine, publisher):
    """Once a deny is committed and published the next check is denied."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])
    assert (await engine.authorize(user.id, "Docs.Write")).authorized is True

    store.add_override(user, write, PermissionState.DENY)
    await publisher.publish(
        [PermissionChange(ChangeKind.USER_OVERRIDE_CREATED, user_id=user.id, permission_id=write.id)],
        "admin",
    )

    assert (await engine.authorize(user.id, "Docs.Write")).authorized is False


@pytest.mark.asyncio
async def test_role_change_revokes_for_members(store, docs, engine, publisher):
    _, write, _, _ = docs
    editor = store.add_role("Editor", [write])
    user = store.add_user("alice", roles=[editor])
    assert (await engine.authorize(user.id, "Docs.Write")).authorized is True

    store.roles[editor.id].permission_ids.clear()
    await publisher.publish(
        [PermissionChange(ChangeKind.ROLE_PERMISSION_REMOVED, role_id=editor.id, permission_id=write.id)],
        "admin",
    )

    assert (await engine.authorize(user.id, "Docs.Write")).authorized is False


@pytest.mark.asyncio
async def test_ttl_expiry_recomputes(store, docs, uow_factory):
    """Entries past their TTL are recomputed from the store."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])
    now = [1000.0]
    cache = InMemoryPermissionCache(clock=lambda: now[0])
    engine = AuthorizationEngine(uow_factory, cache, effective_ttl_seconds=60, decision_ttl_seconds=60)

    await engine.authorize(user.id, "Docs.Write")
    now[0] += 61
    await engine.authorize(user.id, "Docs.Write")

    assert store.calls["users.get_with_roles_and_overrides"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("permission", [42, None, b"Docs.Write", ["Docs.Write"]])
async def test_non_string_permission_is_invalid_input(store, docs, engine, permission):
    user = store.add_user("alice")

    decision = await engine.authorize(user.id, permission)

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.INVALID_INPUT
    assert isinstance(decision.permission, str)
    assert store.calls["users.get_by_id"] == 0


@pytest.mark.asyncio
async def test_authorize_all_rejects_non_string_item(store, docs, engine):
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    decision = await engine.authorize_all(user.id, ["Docs.Write", 42])

    assert decision.authorized is False
    assert decision.reason_code == ReasonCode.INVALID_INPUT
    assert decision.permission == "Docs.Write, 42"


@pytest.mark.asyncio
async def test_resource_action_rejects_non_string_part(store, docs, engine):
    user = store.add_user("alice")

    decision = await engine.authorize_resource_action(user.id, "Docs", 7)

    assert decision.reason_code == ReasonCode.INVALID_INPUT


@pytest.mark.asyncio
async def test_bulk_authorize_non_string_item(store, docs, engine):
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])

    results = await engine.bulk_authorize(user.id, ["Docs.Write", 42, None])

    assert results["Docs.Write"].authorized is True
    assert results["42"].reason_code == ReasonCode.INVALID_INPUT
    assert results[""].reason_code == ReasonCode.INVALID_INPUT


@pytest.mark.asyncio
async def test_authorize_all_dedupes_after_normalizing(store, docs, engine):
    """Names that differ only in surrounding whitespace are one requirement."""
    _, _, read, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Reader", [read])])

    decision = await engine.authorize_all(user.id, ["Docs.Read", " Docs.Read", "Docs.Read "])

    assert decision.authorized is True
    assert decision.permission == "Docs.Read"
    assert decision.matched == ("Docs.Read",)
    assert decision.reason == "User holds all required permissions: Docs.Read"


@pytest.mark.asyncio
async def test_authorize_any_dedupes_missing(store, docs, engine):
    user = store.add_user("alice")

    decision = await engine.authorize_any(user.id, ["Reports.View", " Reports.View", "Docs.Write"])

    assert decision.authorized is False
    assert decision.missing == ("Reports.View", "Docs.Write")
    assert decision.permission == "Reports.View, Docs.Write"


@pytest.mark.asyncio
async def test_bulk_authorize_evaluates_normalized_name_once(store, docs, engine, cache):
    _, _, read, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Reader", [read])])

    results = await engine.bulk_authorize(user.id, ["Docs.Read", " Docs.Read"])

    assert set(results) == {"Docs.Read", " Docs.Read"}
    assert results["Docs.Read"] == results[" Docs.Read"]
    assert results[" Docs.Read"].permission == "Docs.Read"
    # One effective set plus a single decision entry
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_unknown_permission_names_are_not_cached(store, docs, uow_factory):
    """Arbitrary names from callers do not grow the decision cache."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])
    now = [0.0]
    cache = InMemoryPermissionCache(clock=lambda: now[0])
    engine = AuthorizationEngine(uow_factory, cache, decision_ttl_seconds=1)

    for i in range(2000):
        decision = await engine.authorize(user.id, f"Bogus.Name{i}")
        assert decision.reason_code == ReasonCode.PERMISSION_NOT_FOUND
    now[0] = 10000.0
    await engine.authorize(user.id, "Bogus.Name0")

    assert len(cache) <= 10


@pytest.mark.asyncio
async def test_permission_created_after_not_found_is_seen(store, docs, engine):
    """A not-found answer is recomputed, so a later-created child inherits at once."""
    _, write, _, _ = docs
    user = store.add_user("alice", roles=[store.add_role("Editor", [write])])
    assert (await engine.authorize(user.id, "Docs.Comment")).reason_code == ReasonCode.PERMISSION_NOT_FOUND

    store.add_permission("Docs", "Comment", category="Documents", parent=write)

    decision = await engine.authorize(user.id, "Docs.Comment")
    assert decision.authorized is True
    assert decision.inherited_from == "Docs.Write"
