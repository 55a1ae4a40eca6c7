import pytest
from fastapi.testclient import TestClient

from private_tools.dependencies import (
    get_audit_log,
    get_audit_sink,
    get_grant_store,
    get_identity_provider,
    get_role_store,
)
from private_tools.domain.entities import Identity
from private_tools.main import app
from private_tools.rbac.levels import PermissionLevel

from tests.rbac_fakes import FakeAuditLog, FakeAuditSink, FakeIdentityProvider, seeded_store


@pytest.fixture
def store():
    return seeded_store()


@pytest.fixture
def sink():
    return FakeAuditSink()


@pytest.fixture
def client_for(store, sink):
    def make_client(identity: Identity | None) -> TestClient:
        app.dependency_overrides[get_identity_provider] = lambda: FakeIdentityProvider(identity)
        app.dependency_overrides[get_role_store] = lambda: store
        app.dependency_overrides[get_grant_store] = lambda: store
        app.dependency_overrides[get_audit_sink] = lambda: sink
        app.dependency_overrides[get_audit_log] = lambda: FakeAuditLog(sink)
        return TestClient(app)

    yield make_client
    app.dependency_overrides.clear()


def test_session_anonymous(client_for):
    response = client_for(None).get("/api/session")

    assert response.status_code == 200
    assert response.json()["signed_in"] is False


def test_session_signed_in_self_heals(client_for, store):
    response = client_for(Identity("new_user", "n@example.com")).get("/api/session")

    body = response.json()
    assert body["signed_in"] is True
    assert body["primary_role"]["name"] == "member"
    assert body["permissions"]["tools/files"] == PermissionLevel.READ
    assert store.role_names_of("new_user") == {"member"}


def test_gate_denial(client_for, store, sink):
    store.member("user_1", store.role_named("member"))

    response = client_for(Identity("user_1")).get(
        "/api/gate", params={"route": "tools/files", "level": "admin"}
    )

    assert response.status_code == 200
    assert response.json() == {"allowed": False, "reason": "insufficient_role"}
    assert len(sink.events) == 1


def test_gate_rejects_unknown_level(client_for):
    response = client_for(Identity("user_1")).get(
        "/api/gate", params={"route": "tools/files", "level": "owner"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_mutation_requires_sign_in(client_for):
    response = client_for(None).post("/admin/roles", json={"name": "editor", "label": "Editor"})

    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "AUTH_ERROR",
        "message": "Not signed in",
        "details": None,
    }


def test_refused_mutation_answers_200(client_for, store):
    store.member("user_1", store.role_named("member"))

    response = client_for(Identity("user_1")).post(
        "/admin/roles", json={"name": "editor", "label": "Editor"}
    )

    assert response.status_code == 200
    assert response.json() == {"applied": False, "reason": "insufficient_role"}


def test_upsert_grant_with_nested_route(client_for, store):
    store.member("admin_1", store.role_named("admin"))
    member = store.role_named("member")

    response = client_for(Identity("admin_1")).put(
        f"/admin/roles/{member.id}/routes/tools/journal", json={"level": "write"}
    )

    assert response.json() == {"applied": True, "reason": None}
    assert store.grant_rows(member.id, "tools/journal")[0].level == PermissionLevel.WRITE


def test_role_change_by_admin_is_refused(client_for, store, sink):
    store.member("admin_1", store.role_named("admin"))
    store.member("target", store.role_named("member"))

    response = client_for(Identity("admin_1")).put(
        "/admin/users/target/roles", json={"role_ids": [store.role_named("admin").id]}
    )

    assert response.json() == {"applied": False, "reason": "role_change_requires_superadmin"}
    assert store.role_names_of("target") == {"member"}
    assert sink.reasons() == ["role_change_requires_superadmin"]


def test_create_update_delete_role(client_for, store):
    store.member("root", store.role_named("superadmin"))
    client = client_for(Identity("root"))

    assert client.post("/admin/roles", json={"name": "editor", "label": "Editor", "rank": "10"}).json()["applied"]
    editor = store.role_named("editor")
    assert editor.rank == 10

    assert client.patch(f"/admin/roles/{editor.id}", json={"label": "Editors", "rank": 11}).json()["applied"]
    assert editor.label == "Editors"

    assert client.delete(f"/admin/roles/{editor.id}").json()["applied"]
    assert editor.id not in store.roles


def test_label_only_patch_keeps_flag_and_rank(client_for, store):
    store.member("root", store.role_named("superadmin"))
    owner = store.add_role("owner", rank=90, is_superadmin=True)

    response = client_for(Identity("root")).patch(f"/admin/roles/{owner.id}", json={"label": "Owners"})

    assert response.json() == {"applied": True, "reason": None}
    assert owner.label == "Owners"
    assert owner.is_superadmin is True
    assert owner.rank == 90


def test_identity_roles_listing(client_for, store):
    store.member("admin_1", store.role_named("admin"))
    store.member("target", store.role_named("member"), store.role_named("admin"))

    response = client_for(Identity("admin_1")).get("/admin/users/target/roles")

    assert response.status_code == 200
    assert [role["name"] for role in response.json()] == ["member", "admin"]


def test_identity_roles_listing_forbidden_for_member(client_for, store):
    store.member("user_1", store.role_named("member"))

    response = client_for(Identity("user_1")).get("/admin/users/user_1/roles")

    assert response.status_code == 403


def test_permissions_overview_forbidden_for_member(client_for, store):
    store.member("user_1", store.role_named("member"))

    response = client_for(Identity("user_1")).get("/admin/permissions")

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Signed in, but insufficient role"


def test_permissions_overview_and_bulk_save(client_for, store):
    store.member("admin_1", store.role_named("admin"))
    client = client_for(Identity("admin_1"))
    member = store.role_named("member")

    saved = client.put(
        "/admin/permissions",
        json={"matrix": {str(member.id): {"tools/files": "none", "tools/messages": 2}}},
    )
    overview = client.get("/admin/permissions").json()

    assert saved.json()["applied"] is True
    rows = {row["route"]: row for row in overview["routes"]}
    assert "member" not in rows["tools/files"]["explicit"]
    assert rows["tools/messages"]["levels"]["member"] == 2
    assert overview["labels"]["3"] == "Admin"
    assert [role["name"] for role in overview["roles"]] == ["member", "admin", "superadmin"]


def test_audit_listing(client_for, store, sink):
    store.member("user_1", store.role_named("member"))
    client_for(Identity("user_1")).get("/api/gate", params={"route": "activity"})
    store.member("admin_1", store.role_named("admin"))

    response = client_for(Identity("admin_1")).get("/admin/audit", params={"limit": 5})

    assert response.status_code == 200
    events = response.json()
    assert events[0]["action"] == "access_denied"
    assert events[0]["target"] == "activity"
    assert events[0]["detail"]["roles"] == ["member"]
