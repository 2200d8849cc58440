"""
tests/test_user_admin.py -- Integration tests for user administration and
the audit log endpoint.

Covers:
  - Create user: first_access starts true, duplicates rejected
  - Username immutability, partial updates, admin password reset
  - Toggle active: self-deactivation and last-admin guards
  - Disable policy for already-issued sessions, both settings
  - GET /logs returns newest entries first
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import app
from conftest import ADMIN_USERNAME, client_for, create_user


def _create(admin_client: TestClient, username: str, **overrides):
    payload = {
        "username": username,
        "password": f"{username}-pass",
        "email": f"{username}@example.com",
        "name": username.title(),
    }
    payload.update(overrides)
    return admin_client.post("/api/usuarios", json=payload)


class TestCreateUser:
    def test_create_starts_in_first_access(self, office, admin_client) -> None:
        _, stores = office
        before = stores.audit.count()
        resp = _create(admin_client, "paula", role="admin")
        assert resp.status_code == 201
        body = resp.json()
        assert body["role"] == "admin"
        assert body["first_access"] is True
        assert body["is_active"] is True
        assert "password" not in body
        assert stores.audit.count() == before + 1
        assert stores.audit.list_recent(limit=1)[0].action == "criar_usuario"

    def test_duplicate_username(self, admin_client) -> None:
        assert _create(admin_client, "quesia").status_code == 201
        resp = _create(admin_client, "quesia", email="other@example.com")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "duplicate_username"

    def test_duplicate_email(self, admin_client) -> None:
        assert _create(admin_client, "rafael").status_code == 201
        resp = _create(admin_client, "rafael2", email="rafael@example.com")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "duplicate_email"

    def test_validation(self, admin_client) -> None:
        resp = _create(admin_client, "x", password="123", email="not-an-email", role="root")
        assert resp.status_code == 400
        fields = {f["field"] for f in resp.json()["error"]["detail"]["fields"]}
        assert {"username", "password", "email", "role"} <= fields

    def test_list_users(self, admin_client) -> None:
        users = admin_client.get("/api/usuarios").json()
        assert ADMIN_USERNAME in [u["username"] for u in users]
        assert all("hashed_password" not in u for u in users)


class TestUpdateUser:
    def test_partial_update(self, office, admin_client) -> None:
        user_id = _create(admin_client, "sergio").json()["id"]
        resp = admin_client.patch(f"/api/usuarios/{user_id}", json={"name": "Sérgio Lima"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Sérgio Lima"
        assert resp.json()["email"] == "sergio@example.com"

    def test_username_is_immutable(self, admin_client) -> None:
        user_id = _create(admin_client, "tania").json()["id"]
        resp = admin_client.patch(f"/api/usuarios/{user_id}", json={"username": "renamed"})
        assert resp.status_code == 400
        assert "tania" in [u["username"] for u in admin_client.get("/api/usuarios").json()]

    def test_password_reset_keeps_first_access_flag(self, office, admin_client) -> None:
        _, stores = office
        user_id = _create(admin_client, "ulisses").json()["id"]
        resp = admin_client.patch(f"/api/usuarios/{user_id}", json={"password": "brand-new"})
        assert resp.status_code == 200
        assert resp.json()["first_access"] is True
        assert stores.hasher.verify("brand-new", stores.users.get_by_id(user_id).hashed_password)
        detail = stores.audit.list_recent(limit=1)[0].detail
        assert "password" in detail and "brand-new" not in detail

    def test_empty_patch(self, admin_client) -> None:
        user_id = _create(admin_client, "vera").json()["id"]
        assert admin_client.patch(f"/api/usuarios/{user_id}", json={}).status_code == 400

    def test_unknown_user(self, admin_client) -> None:
        assert admin_client.patch("/api/usuarios/999999", json={"name": "X"}).status_code == 404

    def test_cannot_demote_last_admin(self, office, admin_client) -> None:
        _, stores = office
        # Deactivate every other admin so the fixture admin is the only one left
        me = stores.users.get_by_username(ADMIN_USERNAME)
        for user in stores.users.list_users():
            if user.is_admin and user.id != me.id:
                stores.users.set_active(user.id, False)
        resp = admin_client.patch(f"/api/usuarios/{me.id}", json={"role": "user"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "last_admin"


class TestToggleActive:
    def test_cannot_deactivate_self(self, office, admin_client) -> None:
        _, stores = office
        me = stores.users.get_by_username(ADMIN_USERNAME)
        resp = admin_client.patch(f"/api/usuarios/{me.id}/toggle-ativo", json={"is_active": False})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_deactivation"

    def test_cannot_deactivate_last_admin(self, office, admin_client) -> None:
        _, stores = office
        other = create_user(stores, "walter", "walter-pass", role="admin")
        other_client = client_for("walter", "walter-pass")
        me = stores.users.get_by_username(ADMIN_USERNAME)
        for user in stores.users.list_users():
            if user.is_admin and user.id not in (me.id, other.id):
                stores.users.set_active(user.id, False)

        assert admin_client.patch(f"/api/usuarios/{other.id}/toggle-ativo", json={"is_active": False}).status_code == 200
        # walter's session survives under the default policy, and the only
        # active admin left is the fixture admin, which walter may not disable.
        resp = other_client.patch(f"/api/usuarios/{me.id}/toggle-ativo", json={"is_active": False})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "last_admin"

        assert admin_client.patch(f"/api/usuarios/{other.id}/toggle-ativo", json={"is_active": True}).status_code == 200

    def test_disabled_user_keeps_issued_session_by_default(self, office, admin_client) -> None:
        _, stores = office
        user = create_user(stores, "xenia", "xenia-pass")
        session_client = client_for("xenia", "xenia-pass")

        before = stores.audit.count()
        resp = admin_client.patch(f"/api/usuarios/{user.id}/toggle-ativo", json={"is_active": False})
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert stores.audit.count() == before + 1
        assert stores.audit.list_recent(limit=1)[0].action == "alterar_status_usuario"

        assert session_client.get("/api/user").status_code == 200
        fresh = TestClient(app).post("/api/login", json={"username": "xenia", "password": "xenia-pass"})
        assert fresh.status_code == 401
        assert fresh.json()["error"]["code"] == "account_disabled"

    def test_disabled_user_sessions_revoked_when_configured(self, office, admin_client, monkeypatch) -> None:
        _, stores = office
        monkeypatch.setattr(stores.auth, "revoke_sessions_on_disable", True)
        user = create_user(stores, "yuri", "yuri-pass")
        session_client = client_for("yuri", "yuri-pass")

        admin_client.patch(f"/api/usuarios/{user.id}/toggle-ativo", json={"is_active": False})
        assert session_client.get("/api/user").status_code == 401

        # Reactivation does not bring the old session back
        admin_client.patch(f"/api/usuarios/{user.id}/toggle-ativo", json={"is_active": True})
        assert session_client.get("/api/user").status_code == 401
        client_for("yuri", "yuri-pass")


class TestLogs:
    def test_logs_newest_first(self, office, admin_client) -> None:
        _create(admin_client, "zelia")
        logs = admin_client.get("/api/logs").json()
        assert 0 < len(logs) <= 100
        assert logs[0]["action"] == "criar_usuario"
        assert logs[0]["user_name"] == "Administrator"
        stamps = [e["created_at"] for e in logs]
        assert stamps == sorted(stamps, reverse=True)

    def test_logs_admin_only(self, office) -> None:
        _, stores = office
        create_user(stores, "comum", "comum-pass")
        assert client_for("comum", "comum-pass").get("/api/logs").status_code == 403
