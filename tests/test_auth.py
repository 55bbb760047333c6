"""Tests for auth.py — register, login, logout, current user and audit trail."""

import pytest

from audit import events_for_user, log_event

TEST_PASSWORD = "testpass123"


class TestRegister:
    def test_register_logs_in(self, client):
        resp = client.post("/api/auth/register", json={
            "name": "New Student", "email": "New@Example.com", "password": "secret1",
        })
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["email"] == "new@example.com"

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.get_json()["user"]["id"] == user["id"]

    def test_short_password_rejected(self, client):
        resp = client.post("/api/auth/register", json={
            "name": "New", "email": "short@example.com", "password": "12345",
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Password should be at least 6 characters."

    def test_duplicate_email_rejected(self, client):
        resp = client.post("/api/auth/register", json={
            "name": "Again", "email": "test@example.com", "password": "secret1",
        })
        assert resp.status_code == 409

    @pytest.mark.parametrize("body", [
        {"email": "a@example.com", "password": "secret1"},
        {"name": "A", "password": "secret1"},
        {"name": "A", "email": "a@example.com"},
    ])
    def test_missing_fields(self, client, body):
        assert client.post("/api/auth/register", json=body).status_code == 400


class TestLogin:
    def test_login_success(self, client):
        resp = client.post("/api/auth/login", json={
            "email": "test@example.com", "password": TEST_PASSWORD,
        })
        assert resp.status_code == 200
        assert resp.get_json()["user"]["name"] == "Test Student"

    def test_wrong_password(self, client):
        resp = client.post("/api/auth/login", json={
            "email": "test@example.com", "password": "wrongpass",
        })
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid email or password."

    def test_unknown_email(self, client):
        resp = client.post("/api/auth/login", json={
            "email": "nobody@example.com", "password": TEST_PASSWORD,
        })
        assert resp.status_code == 401

    def test_missing_credentials(self, client):
        assert client.post("/api/auth/login", json={}).status_code == 400


class TestSession:
    def test_me_requires_login(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Authentication required."

    def test_logout(self, auth_client):
        assert auth_client.post("/api/auth/logout").get_json() == {"success": True}
        assert auth_client.get("/api/auth/me").status_code == 401

    def test_protected_routes_require_login(self, client):
        for path in ["/api/sessions", "/api/dashboard", "/api/sessions/1/tutor"]:
            assert client.get(path).status_code == 401


class TestAudit:
    def test_login_events_recorded(self, app, client):
        client.post("/api/auth/login", json={"email": "test@example.com", "password": "wrongpass"})
        client.post("/api/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD})
        client.post("/api/auth/logout")

        with app.app_context():
            actions = [e["action"] for e in events_for_user(1)]
        assert actions == ["logout", "login_success", "login_failed"]

    def test_log_event_outside_request(self, app):
        with app.app_context():
            log_event("password_reset", 2, "manual")
            event = events_for_user(2)[0]
        assert event["action"] == "password_reset"
        assert event["ip_address"] == ""

    def test_failed_insert_is_logged(self, app, caplog):
        with app.app_context():
            from database import get_db
            get_db().execute("DROP TABLE audit_log")
            with caplog.at_level("WARNING", logger="audit"):
                log_event("login_success", 1)
        assert any("Could not write audit event" in r.getMessage() for r in caplog.records)

    def test_activity_lists_own_events(self, app, auth_client, other_client):
        with app.app_context():
            log_event("password_reset", 1, "manual")

        events = auth_client.get("/api/auth/activity").get_json()["events"]
        assert [e["action"] for e in events] == ["password_reset", "login_success"]
        assert events[0]["detail"] == "manual"

        others = other_client.get("/api/auth/activity?limit=5").get_json()["events"]
        assert [e["action"] for e in others] == ["login_success"]

    def test_activity_limit_and_login(self, client, auth_client):
        assert client.get("/api/auth/activity").status_code == 401
        assert len(auth_client.get("/api/auth/activity?limit=0").get_json()["events"]) == 1
