import pytest

from private_tools.domain.entities import AuditEvent, Identity
from private_tools.errors import AuthError, PermissionError
from private_tools.rbac.levels import PermissionLevel

from tests.rbac_fakes import FakeAuditSink, build_overview_service, seeded_store


def overview_fixture(actor_roles=("admin",)):
    store, sink = seeded_store(), FakeAuditSink()
    store.member("actor", *(store.role_named(name) for name in actor_roles))
    return store, sink, build_overview_service(store, sink, Identity("actor"))


@pytest.mark.anyio
async def test_overview_orders_roles_by_rank():
    store, sink, service = overview_fixture()

    overview = await service.get_permission_overview()

    assert [role.name for role in overview.roles] == ["member", "admin", "superadmin"]


@pytest.mark.anyio
async def test_explicit_grants_and_display_defaults():
    store, sink, service = overview_fixture()

    matrix = (await service.get_permission_overview()).matrix

    assert matrix["tools/files"]["admin"] == PermissionLevel.WRITE
    assert matrix["tools/files"]["member"] == PermissionLevel.READ
    # no grant, descriptor default shown for display
    assert matrix["tools/journal"]["member"] == PermissionLevel.READ
    assert matrix["tools/system"]["member"] == PermissionLevel.NONE


@pytest.mark.anyio
async def test_display_defaults_are_not_granted():
    store, sink, service = overview_fixture()

    overview = await service.get_permission_overview()
    journal = next(row for row in overview.routes if row.route == "tools/journal")

    assert "member" not in journal.explicit
    session = await service.gate.resolve_session()
    assert session.level_for("tools/journal") == PermissionLevel.NONE


@pytest.mark.anyio
async def test_custom_routes_are_listed():
    store, sink, service = overview_fixture()
    store.grant(store.role_named("member"), "/tools//beta", PermissionLevel.WRITE)

    overview = await service.get_permission_overview()
    custom = next(row for row in overview.routes if row.route == "tools/beta")

    assert custom.is_custom is True
    assert custom.levels["member"] == PermissionLevel.WRITE
    assert custom.levels["admin"] == PermissionLevel.NONE


@pytest.mark.anyio
async def test_overview_requires_read_on_permissions_route():
    store, sink, service = overview_fixture(actor_roles=("member",))

    with pytest.raises(PermissionError):
        await service.get_permission_overview()

    assert sink.events[0].target == "admin/settings"
    assert sink.events[0].detail["required"] == "Read"


@pytest.mark.anyio
async def test_audit_listing_newest_first_with_filter():
    store, sink, service = overview_fixture()
    sink.events.extend(
        [
            AuditEvent(action="role_change", actor_user_id="a", target="first"),
            AuditEvent(action="security_event", actor_user_id="a", target="second"),
            AuditEvent(action="role_change", actor_user_id="a", target="third"),
        ]
    )

    events = await service.list_audit_events(limit=10)
    role_changes = await service.list_audit_events(action="role_change", limit=1)

    assert [event.target for event in events] == ["third", "second", "first"]
    assert [event.target for event in role_changes] == ["third"]


@pytest.mark.anyio
async def test_audit_listing_is_gated():
    store, sink = seeded_store(), FakeAuditSink()

    with pytest.raises(AuthError):
        await build_overview_service(store, sink, None).list_audit_events()


@pytest.mark.anyio
async def test_identity_roles_ordered_by_rank():
    store, sink, service = overview_fixture()
    store.member("target", store.role_named("superadmin"), store.role_named("member"))

    roles = await service.list_identity_roles("target")

    assert [role.name for role in roles] == ["member", "superadmin"]
    assert roles[1].is_superadmin is True


@pytest.mark.anyio
async def test_identity_without_memberships_has_no_roles():
    store, sink, service = overview_fixture()

    assert await service.list_identity_roles("nobody") == []
    assert store.role_names_of("nobody") == set()


@pytest.mark.anyio
async def test_identity_roles_require_read_on_users_route():
    store, sink, service = overview_fixture(actor_roles=("member",))

    with pytest.raises(PermissionError):
        await service.list_identity_roles("target")

    assert sink.events[0].target == "admin/users"
