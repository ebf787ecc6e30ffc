"""
Auth API tests — register, login, refresh cookie, logout, me, password
change and the password-reset token flow.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from marketplace.blueprints.auth_bp import RESET_REQUESTED_MESSAGE
from marketplace.core.exceptions import (
    ExpiredTokenError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    ValidationError,
)
from marketplace.models import db
from marketplace.models.enums import Role, UserStatus
from marketplace.models.user import User
from marketplace.services import auth_service, jwt_service
from marketplace.utils.crypto import hash_password, hash_token, verify_password

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"


def _register(client, **overrides):
    payload = {
        "email": "new.user@example.com",
        "password": "Secret123!",
        "full_name": "New User",
        "role": "specialist",
    }
    payload.update(overrides)
    return client.post(REGISTER_URL, json=payload)


# ═══════════════════════════════════════════════════════════════
# Password hashing
# ═══════════════════════════════════════════════════════════════

class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("MyPass123!")
        assert hashed != "MyPass123!"
        assert verify_password("MyPass123!", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_rejects_garbage_hash(self):
        assert not verify_password("x", "not-a-bcrypt-hash")


# ═══════════════════════════════════════════════════════════════
# JWT
# ═══════════════════════════════════════════════════════════════

class TestJWT:
    def test_access_token_claims(self, make_user):
        user = make_user(Role.SPECIALIST)
        payload = jwt_service.decode_access_token(jwt_service.generate_access_token(user))
        assert payload["sub"] == user.id
        assert payload["role"] == "specialist"
        assert payload["type"] == "access"
        assert "specialist.create" in payload["permissions"]

    def test_refresh_token_is_not_an_access_token(self, make_user):
        user = make_user()
        refresh = jwt_service.generate_refresh_token(user)
        with pytest.raises(InvalidTokenError):
            jwt_service.decode_access_token(refresh)

    def test_expired_token(self, app, make_user):
        user = make_user()
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": user.id, "type": "access", "iat": past, "exp": past + timedelta(seconds=1)},
            app.config["JWT_SECRET_KEY"],
            algorithm="HS256",
        )
        with pytest.raises(ExpiredTokenError):
            jwt_service.decode_access_token(token)

    def test_wrong_secret_is_invalid(self, make_user):
        token = jwt.encode({"sub": "x", "type": "access"}, "other-secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            jwt_service.decode_access_token(token)


# ═══════════════════════════════════════════════════════════════
# Registration & login
# ═══════════════════════════════════════════════════════════════

class TestRegister:
    def test_register_returns_access_token_and_sets_cookie(self, client):
        res = _register(client)
        assert res.status_code == 201
        body = res.get_json()
        assert body["success"] is True
        assert body["data"]["user"]["email"] == "new.user@example.com"
        assert body["data"]["user"]["role"] == "specialist"
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["access_token"]
        assert "refresh_token" not in body["data"]
        cookie = res.headers.get("Set-Cookie", "")
        assert "refresh_token=" in cookie
        assert "HttpOnly" in cookie

    def test_duplicate_email_conflicts(self, client):
        _register(client)
        res = _register(client, email="NEW.USER@example.com")
        assert res.status_code == 409
        assert res.get_json()["error"]["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_privileged_role_cannot_be_self_assigned(self, client):
        res = _register(client, role="super_admin")
        assert res.status_code == 400
        assert User.query.count() == 0

    def test_missing_fields(self, client):
        res = client.post(REGISTER_URL, json={"email": "a@example.com"})
        assert res.status_code == 400
        assert res.get_json()["error"]["code"] == "ERR_VALIDATION"

    def test_short_password(self, client):
        res = _register(client, password="short")
        assert res.status_code == 400

    def test_invalid_email(self, client):
        res = _register(client, email="not-an-email")
        assert res.status_code == 400

    def test_register_with_profile_image(self, client, storage, image_file):
        res = client.post(
            REGISTER_URL,
            data={
                "email": "pic@example.com",
                "password": "Secret123!",
                "full_name": "Pic User",
                "profile_image": image_file(),
            },
            content_type="multipart/form-data",
        )
        assert res.status_code == 201
        url = res.get_json()["data"]["user"]["profile_image"]
        assert url.startswith("https://cdn.example.com/profile-images/")
        assert len(storage.objects) == 1

    def test_duplicate_email_uploads_nothing(self, client, make_user, storage, image_file):
        make_user(email="taken@example.com")
        res = client.post(
            REGISTER_URL,
            data={
                "email": "taken@example.com",
                "password": "Secret123!",
                "full_name": "Dup",
                "profile_image": image_file(),
            },
            content_type="multipart/form-data",
        )
        assert res.status_code == 409
        assert storage.objects == {}

    def test_rejects_non_image_profile(self, client, image_file):
        res = client.post(
            REGISTER_URL,
            data={
                "email": "doc@example.com",
                "password": "Secret123!",
                "full_name": "Doc",
                "profile_image": image_file("cv.pdf", b"%PDF", "application/pdf"),
            },
            content_type="multipart/form-data",
        )
        assert res.status_code == 400
        assert res.get_json()["error"]["code"] == "ERR_UPLOAD"


class TestLogin:
    def test_login_success(self, client, make_user):
        user = make_user(Role.CLIENT, email="client@example.com", password="Client123!")
        res = client.post(LOGIN_URL, json={"email": "Client@Example.com", "password": "Client123!"})
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["user"]["id"] == user.id
        assert data["token_type"] == "Bearer"
        assert "company.read.own" in data["permissions"]
        assert db.session.get(User, user.id).last_login_at is not None

    def test_wrong_password(self, client, make_user):
        make_user(email="client@example.com")
        res = client.post(LOGIN_URL, json={"email": "client@example.com", "password": "nope-nope"})
        assert res.status_code == 401
        assert res.get_json()["error"]["code"] == "ERR_UNAUTHENTICATED"

    def test_unknown_email(self, client):
        res = client.post(LOGIN_URL, json={"email": "ghost@example.com", "password": "whatever1"})
        assert res.status_code == 401

    def test_inactive_account(self, client, make_user):
        make_user(email="sleepy@example.com", status=UserStatus.SUSPENDED)
        res = client.post(LOGIN_URL, json={"email": "sleepy@example.com", "password": "Password123!"})
        assert res.status_code == 401


class TestTokens:
    def test_refresh_with_cookie(self, client, make_user):
        make_user(email="r@example.com")
        client.post(LOGIN_URL, json={"email": "r@example.com", "password": "Password123!"})
        res = client.post("/api/v1/auth/refresh")
        assert res.status_code == 200
        assert res.get_json()["data"]["access_token"]

    def test_refresh_without_token(self, client):
        res = client.post("/api/v1/auth/refresh")
        assert res.status_code == 401

    def test_refresh_rejects_access_token(self, client, make_user):
        user = make_user()
        res = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": jwt_service.generate_access_token(user)},
        )
        assert res.status_code == 401
        assert res.get_json()["error"]["code"] == "ERR_TOKEN_INVALID"

    def test_logout_clears_cookie(self, client):
        res = client.post("/api/v1/auth/logout")
        assert res.status_code == 200
        assert "refresh_token=;" in res.headers.get("Set-Cookie", "")

    def test_me_requires_token(self, client):
        res = client.get("/api/v1/auth/me")
        assert res.status_code == 401

    def test_me_with_token(self, client, make_user, auth_header):
        user = make_user(Role.MANAGER)
        res = client.get("/api/v1/auth/me", headers=auth_header(user))
        assert res.status_code == 200
        assert res.get_json()["data"]["user"]["id"] == user.id

    def test_token_of_deleted_user_is_rejected(self, client, make_user, auth_header):
        user = make_user()
        headers = auth_header(user)
        user.soft_delete()
        db.session.commit()
        res = client.get("/api/v1/auth/me", headers=headers)
        assert res.status_code == 401

    def test_garbage_bearer_token(self, client):
        res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer abc.def.ghi"})
        assert res.status_code == 401
        assert res.get_json()["error"]["code"] == "ERR_TOKEN_INVALID"


# ═══════════════════════════════════════════════════════════════
# Password lifecycle
# ═══════════════════════════════════════════════════════════════

class TestChangePassword:
    def test_change_password(self, client, make_user, auth_header):
        user = make_user(email="cp@example.com", password="OldPass123!")
        res = client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "OldPass123!", "new_password": "NewPass456!"},
            headers=auth_header(user),
        )
        assert res.status_code == 200
        assert verify_password("NewPass456!", db.session.get(User, user.id).password_hash)

    def test_wrong_current_password(self, client, make_user, auth_header):
        user = make_user(password="OldPass123!")
        res = client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "bad-guess1", "new_password": "NewPass456!"},
            headers=auth_header(user),
        )
        assert res.status_code == 401


class TestPasswordReset:
    def test_forgot_password_same_reply_for_unknown_email(self, client, make_user):
        make_user(email="known@example.com")
        known = client.post("/api/v1/auth/forgot-password", json={"email": "known@example.com"})
        unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.get_json()["message"] == unknown.get_json()["message"] == RESET_REQUESTED_MESSAGE
        assert known.get_json()["data"] is None

    def test_only_digest_is_stored(self, make_user):
        user = make_user(email="digest@example.com")
        token = auth_service.request_password_reset("digest@example.com")
        assert token
        stored = db.session.get(User, user.id)
        assert stored.password_reset_token_hash == hash_token(token)
        assert stored.password_reset_token_hash != token
        assert stored.password_reset_expires is not None

    def test_reset_password_flow(self, client, make_user):
        user = make_user(email="reset@example.com")
        token = auth_service.request_password_reset("reset@example.com")
        res = client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": "Brand-New-1"},
        )
        assert res.status_code == 200
        stored = db.session.get(User, user.id)
        assert verify_password("Brand-New-1", stored.password_hash)
        assert stored.password_reset_token_hash is None

    def test_token_is_single_use(self, client, make_user):
        make_user(email="once@example.com")
        token = auth_service.request_password_reset("once@example.com")
        client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "First-Pass-1"})
        res = client.post("/api/v1/auth/reset-password",
                          json={"token": token, "new_password": "Second-Pass-2"})
        assert res.status_code == 400
        assert res.get_json()["error"]["code"] == "ERR_INVALID_OR_EXPIRED_TOKEN"

    def test_expired_token(self, make_user):
        user = make_user(email="late@example.com")
        token = auth_service.create_password_reset_token(user)
        user.password_reset_expires = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.session.commit()
        with pytest.raises(InvalidOrExpiredTokenError):
            auth_service.consume_password_reset_token(token, "Whatever-123")

    def test_unknown_token(self, client):
        res = client.post("/api/v1/auth/reset-password",
                          json={"token": "nope", "new_password": "Whatever-123"})
        assert res.status_code == 400
        assert res.get_json()["error"]["code"] == "ERR_INVALID_OR_EXPIRED_TOKEN"

    def test_inactive_user_gets_no_token(self, make_user):
        make_user(email="off@example.com", status=UserStatus.INACTIVE)
        assert auth_service.request_password_reset("off@example.com") is None

    def test_reset_validates_new_password(self, make_user):
        user = make_user(email="weak@example.com", password="Password123!")
        token = auth_service.request_password_reset("weak@example.com")
        with pytest.raises(ValidationError):
            auth_service.consume_password_reset_token(token, "short")
        assert verify_password("Password123!", db.session.get(User, user.id).password_hash)
