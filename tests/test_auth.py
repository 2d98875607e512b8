"""
Tests for authentication, users and the response envelope
"""

from inventory_core.app import models
from inventory_core.app.security import create_refresh_token

from .conftest import ADMIN_PASSWORD, USER_PASSWORD, make_user, auth_headers


class TestLogin:
    """Login with JSON and form bodies"""

    def test_json_login_returns_token_pair(self, client, admin):
        r = client.post("/api/v1/auth/login", json={"username": "admin", "password": ADMIN_PASSWORD})
        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["data"]["token_type"] == "bearer"
        assert body["data"]["access_token"]
        assert body["data"]["refresh_token"]
        assert body["data"]["user"]["username"] == "admin"
        assert body["data"]["user"]["last_login"] is not None

    def test_form_login(self, client, admin):
        r = client.post("/api/v1/auth/login", data={"username": "ADMIN", "password": ADMIN_PASSWORD})
        assert r.status_code == 200
        assert r.json()["data"]["user"]["is_admin"] is True

    def test_wrong_password_is_rejected_and_audited(self, client, admin, db):
        r = client.post("/api/v1/auth/login", json={"username": "admin", "password": "nope"})
        assert r.status_code == 400
        body = r.json()
        assert body["success"] is False
        assert body["message"] == "Incorrect username or password"

        failures = db.query(models.AuditLog).filter(models.AuditLog.action == "login_failed").all()
        assert len(failures) == 1

    def test_missing_fields(self, client):
        r = client.post("/api/v1/auth/login", json={"username": "admin"})
        assert r.status_code == 400

    def test_inactive_user_cannot_log_in(self, client, db):
        user = make_user(db, "clerk")
        user.user_status = 0
        db.commit()
        r = client.post("/api/v1/auth/login", json={"username": "clerk", "password": USER_PASSWORD})
        assert r.status_code == 400
        assert r.json()["message"] == "User account is disabled"


class TestTokens:
    """Bearer token handling"""

    def test_missing_token(self, client):
        r = client.get("/api/v1/users/me")
        assert r.status_code == 401
        assert r.json()["success"] is False

    def test_garbage_token(self, client):
        r = client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-token"})
        assert r.status_code == 401

    def test_refresh_issues_new_pair(self, client, admin):
        r = client.post("/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(admin)})
        assert r.status_code == 200
        assert r.json()["data"]["access_token"]

    def test_access_token_is_not_a_refresh_token(self, client, admin):
        access = auth_headers(admin)["Authorization"].split()[1]
        r = client.post("/api/v1/auth/refresh", json={"refresh_token": access})
        assert r.status_code == 401

    def test_refresh_token_cannot_call_the_api(self, client, admin):
        r = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {create_refresh_token(admin)}"})
        assert r.status_code == 401


class TestUsers:
    """User administration"""

    def test_me(self, client, admin, company, db):
        clerk = make_user(db, "clerk", companies=[company])
        r = client.get("/api/v1/users/me", headers=auth_headers(clerk))
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["username"] == "clerk"
        assert [c["company_id"] for c in data["companies"]] == [company.company_id]

    def test_create_user_with_company(self, client, admin, company):
        r = client.post("/api/v1/users", headers=auth_headers(admin), json={
            "username": "NewClerk",
            "email": "newclerk@acme.io",
            "password": USER_PASSWORD,
            "company_ids": [company.company_id],
        })
        assert r.status_code == 201
        data = r.json()["data"]
        assert data["username"] == "newclerk"
        assert data["companies"][0]["company_id"] == company.company_id

    def test_weak_password_lists_policy_errors(self, client, admin):
        r = client.post("/api/v1/users", headers=auth_headers(admin), json={
            "username": "weak",
            "email": "weak@acme.io",
            "password": "short",
        })
        assert r.status_code == 400
        assert r.json()["errors"]

    def test_duplicate_username(self, client, admin):
        r = client.post("/api/v1/users", headers=auth_headers(admin), json={
            "username": "admin",
            "email": "other@acme.io",
            "password": USER_PASSWORD,
        })
        assert r.status_code == 409

    def test_non_admin_cannot_list_users(self, client, db):
        clerk = make_user(db, "clerk")
        r = client.get("/api/v1/users", headers=auth_headers(clerk))
        assert r.status_code == 403

    def test_cannot_deactivate_self(self, client, admin):
        r = client.patch(f"/api/v1/users/{admin.user_id}/deactivate", headers=auth_headers(admin))
        assert r.status_code == 400

    def test_change_own_password_requires_current(self, client, db):
        clerk = make_user(db, "clerk")
        headers = auth_headers(clerk)
        r = client.post(f"/api/v1/users/{clerk.user_id}/change-password", headers=headers, json={
            "current_password": "wrong", "new_password": "Fresh#Pass2025",
        })
        assert r.status_code == 400

        r = client.post(f"/api/v1/users/{clerk.user_id}/change-password", headers=headers, json={
            "current_password": USER_PASSWORD, "new_password": "Fresh#Pass2025",
        })
        assert r.status_code == 200

        r = client.post("/api/v1/auth/login", json={"username": "clerk", "password": "Fresh#Pass2025"})
        assert r.status_code == 200

    def test_assign_and_unassign_company(self, client, admin, company, db):
        clerk = make_user(db, "clerk")
        headers = auth_headers(admin)

        r = client.post(f"/api/v1/users/{clerk.user_id}/companies", headers=headers,
                        json={"company_ids": [company.company_id]})
        assert r.status_code == 200
        assert len(r.json()["data"]["companies"]) == 1

        r = client.delete(f"/api/v1/users/{clerk.user_id}/companies/{company.company_id}", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["companies"] == []

    def test_audit_history_records_user_changes(self, client, admin, db):
        clerk = make_user(db, "clerk")
        headers = auth_headers(admin)
        client.put(f"/api/v1/users/{clerk.user_id}", headers=headers, json={"first_name": "Carla"})

        r = client.get(f"/api/v1/users/{clerk.user_id}/audit-history", headers=headers)
        assert r.status_code == 200
        body = r.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["action"] == "update"


class TestHealth:

    def test_health(self, client):
        r = client.get("/api/v1/health")
        assert r.status_code == 200
        assert r.json()["status"] == "OK"
