"""
Authentication tests.

Verifies:
- Registration validation and duplicate-email conflicts
- Login returns a bearer token; failures are uniform 401s
- Protected routes reject missing, invalid, revoked and expired tokens
"""

from datetime import timedelta

import pytest

from conftest import TEST_PASSWORD, auth_headers, get_auth_token
from posbuzz.models import SessionToken, User
from posbuzz.services import auth_service, session_service
from posbuzz.time_utils import utcnow


class TestRegister:

    def test_register_returns_public_fields(self, client, db_session):
        resp = client.post("/auth/register", json={
            "email": "New.User@Example.com",
            "password": "hunter22",
            "name": "New User",
        })

        assert resp.status_code == 201
        body = resp.json
        assert set(body.keys()) == {"id", "email", "name"}
        assert body["email"] == "new.user@example.com"
        assert body["name"] == "New User"

        user = db_session.get(User, body["id"])
        assert user.password_hash != "hunter22"
        assert auth_service.verify_password("hunter22", user.password_hash)

    def test_register_name_is_optional(self, client, db_session):
        resp = client.post("/auth/register", json={"email": "a@b.co", "password": "hunter22"})

        assert resp.status_code == 201
        assert resp.json["name"] is None

    def test_duplicate_email_conflicts(self, client, cashier):
        resp = client.post("/auth/register", json={
            "email": "CASHIER@posbuzz.test",
            "password": "another1",
        })

        assert resp.status_code == 409

    @pytest.mark.parametrize("payload", [
        {"password": "hunter22"},
        {"email": "a@b.co"},
        {"email": "not-an-email", "password": "hunter22"},
        {"email": "a@b.co", "password": "short"},
        {"email": "a@b.co", "password": "hunter22", "name": 12},
    ])
    def test_invalid_registration_rejected(self, client, db_session, payload):
        resp = client.post("/auth/register", json=payload)

        assert resp.status_code == 400
        assert db_session.query(User).count() == 0

    def test_non_json_body_rejected(self, client, db_session):
        resp = client.post("/auth/register", data="email=a@b.co", content_type="text/plain")

        assert resp.status_code == 400


class TestLogin:

    def test_login_returns_token_and_user(self, client, cashier):
        resp = client.post("/auth/login", json={
            "email": "cashier@posbuzz.test",
            "password": TEST_PASSWORD,
        })

        assert resp.status_code == 200
        body = resp.json
        assert body["token_type"] == "bearer"
        assert len(body["access_token"]) == 64
        assert body["user"] == {"id": cashier.id, "email": "cashier@posbuzz.test", "name": "Cashier One"}

    def test_login_email_is_case_insensitive(self, client, cashier):
        assert get_auth_token(client, "Cashier@PosBuzz.test", TEST_PASSWORD)

    def test_wrong_password_and_unknown_email_look_the_same(self, client, cashier):
        wrong_password = client.post("/auth/login", json={
            "email": "cashier@posbuzz.test",
            "password": "wrong-password",
        })
        unknown_email = client.post("/auth/login", json={
            "email": "nobody@posbuzz.test",
            "password": TEST_PASSWORD,
        })

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json == unknown_email.json

    def test_inactive_user_cannot_login(self, client, cashier, db_session):
        cashier.is_active = False
        db_session.commit()

        assert get_auth_token(client, "cashier@posbuzz.test", TEST_PASSWORD) is None

    def test_missing_fields(self, client, db_session):
        resp = client.post("/auth/login", json={"email": "cashier@posbuzz.test"})

        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [[1, 2], "cashier@posbuzz.test", 42])
    def test_non_object_body_rejected(self, client, cashier, body):
        resp = client.post("/auth/login", json=body)

        assert resp.status_code == 400
        assert resp.json == {"error": "Invalid JSON payload"}


class TestBearerGating:

    def test_profile_with_login_token(self, client, cashier):
        token = get_auth_token(client, "cashier@posbuzz.test", TEST_PASSWORD)

        resp = client.get("/auth/profile", headers=auth_headers(token))

        assert resp.status_code == 200
        assert resp.json == {"id": cashier.id, "email": "cashier@posbuzz.test", "name": "Cashier One"}

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer"},
        {"Authorization": "Token abc"},
        {"Authorization": "Bearer not-a-real-token"},
    ])
    def test_profile_rejects_bad_credentials(self, client, db_session, headers):
        resp = client.get("/auth/profile", headers=headers)

        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, cashier_headers):
        assert client.post("/auth/logout", headers=cashier_headers).status_code == 200

        assert client.get("/auth/profile", headers=cashier_headers).status_code == 401
        assert client.post("/auth/logout", headers=cashier_headers).status_code == 401

    def test_deactivated_user_token_rejected(self, client, cashier, cashier_headers, db_session):
        cashier.is_active = False
        db_session.commit()

        assert client.get("/auth/profile", headers=cashier_headers).status_code == 401


class TestSessionService:

    def test_token_stored_hashed(self, cashier, db_session):
        session, token = session_service.create_session(cashier.id)

        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_expired_session_rejected(self, cashier, db_session):
        session, token = session_service.create_session(cashier.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_idle_session_revoked(self, cashier, db_session):
        session, token = session_service.create_session(cashier.id)
        session.last_used_at = utcnow() - session_service.IDLE_LIMIT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked is True
        assert session.revoked_reason == "Idle timeout"

    def test_context_exposes_caller_identity(self, cashier, db_session):
        _, token = session_service.create_session(cashier.id)

        context = session_service.validate_session(token)

        assert context.user_id == cashier.id
        assert context.email == "cashier@posbuzz.test"

    def test_revoke_all_and_cleanup(self, cashier, db_session):
        for _ in range(3):
            session_service.create_session(cashier.id)

        assert session_service.revoke_all_user_sessions(cashier.id) == 3

        for session in db_session.query(SessionToken).all():
            session.created_at = utcnow() - timedelta(days=45)
        db_session.commit()

        assert session_service.cleanup_expired_sessions() == 3
        assert db_session.query(SessionToken).count() == 0

    def test_verify_password_rejects_malformed_hash(self):
        assert auth_service.verify_password("anything", "not-a-bcrypt-hash") is False
