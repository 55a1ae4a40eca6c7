import pytest

from private_tools.domain.entities import Identity
from private_tools.rbac.levels import PermissionLevel
from private_tools.rbac.policy import RbacPolicy
from private_tools.services.session_service import SessionService

from tests.rbac_fakes import FakeIdentityProvider, seeded_store


def make_service(store, identity, policy=None):
    return SessionService(FakeIdentityProvider(identity), store, store, policy or RbacPolicy())


@pytest.mark.anyio
async def test_anonymous_session():
    store = seeded_store()

    session = await make_service(store, None).resolve_session()

    assert session.signed_in is False
    assert session.roles == []
    assert session.permissions == {}
    assert store.memberships == set()


@pytest.mark.anyio
async def test_session_carries_roles_and_effective_levels():
    store = seeded_store()
    store.member("user_1", store.role_named("member"), store.role_named("admin"))

    session = await make_service(store, Identity("user_1", "a@example.com")).resolve_session()

    assert session.signed_in is True
    assert session.email == "a@example.com"
    assert set(session.role_names) == {"member", "admin"}
    assert session.primary_role.name == "admin"
    assert session.is_superadmin is False
    assert session.level_for("tools/files") == PermissionLevel.WRITE
    assert session.level_for("dashboard") == PermissionLevel.READ
    assert session.level_for("tools/journal") == PermissionLevel.NONE


@pytest.mark.anyio
async def test_default_role_self_healing_is_idempotent():
    store = seeded_store()
    service = make_service(store, Identity("new_user"))

    first = await service.resolve_session()
    second = await service.resolve_session()

    assert first.role_names == ["member"]
    assert second.role_names == ["member"]
    assert store.role_names_of("new_user") == {"member"}
    assert len([pair for pair in store.memberships if pair[0] == "new_user"]) == 1
    assert store.commits == 1


@pytest.mark.anyio
async def test_missing_default_role_leaves_identity_without_roles():
    store = seeded_store()
    del store.roles[store.role_named("member").id]

    session = await make_service(store, Identity("new_user")).resolve_session()

    assert session.signed_in is True
    assert session.roles == []
    assert session.permissions == {}
    assert store.commits == 0


@pytest.mark.anyio
async def test_default_role_assignment_failure_rolls_back():
    store = seeded_store()
    store.fail_on.add("assign_default_role")

    session = await make_service(store, Identity("new_user")).resolve_session()

    assert session.signed_in is True
    assert session.roles == []
    assert store.rollbacks == 1


@pytest.mark.anyio
async def test_existing_membership_is_not_self_healed():
    store = seeded_store()
    store.member("user_1", store.role_named("admin"))

    session = await make_service(store, Identity("user_1")).resolve_session()

    assert session.role_names == ["admin"]
    assert store.commits == 0


@pytest.mark.anyio
async def test_configured_default_role_name():
    store = seeded_store()
    policy = RbacPolicy(default_role_name="admin")

    session = await make_service(store, Identity("new_user"), policy).resolve_session()

    assert session.role_names == ["admin"]
