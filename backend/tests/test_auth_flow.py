from __future__ import annotations

import time

from app.core.session_token import decode_session_token
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.services import session_lifecycle
from app.services.refresh_tokens import revoke_all_refresh_tokens, validate_refresh_token
from app.services.session_cookie import cookie_name

TEST_PASSWORD = "test_password_123"


def _session(client):
    return decode_session_token(client.cookies.get(cookie_name()))


def _travel(monkeypatch, seconds: int) -> None:
    future = int(time.time()) + seconds
    monkeypatch.setattr(session_lifecycle, "_now_seconds", lambda: future)


# ---------------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------------


def test_register_login_session_logout(client, db_session):
    email = "newuser@example.com"
    password = "Password_12345"

    res = client.post("/auth/register", json={"email": email, "password": password, "name": "New User"})
    assert res.status_code == 201
    body = res.json()
    assert body["email"] == email
    assert body["provider"] == "credentials"
    assert body["role"] == "user"
    assert "password_hash" not in body

    u = db_session.query(User).filter(User.email == email).first()
    assert u is not None and u.password_hash != password

    # Login sets the session cookie and returns the session view
    res2 = client.post("/auth/login", json={"email": email, "password": password})
    assert res2.status_code == 200
    view = res2.json()
    assert view["user"]["email"] == email
    assert view["error"] is None
    assert view["accessTokenExpires"] > int(time.time())
    assert cookie_name() in client.cookies

    payload = _session(client)
    assert payload.user_id == str(u.id)
    assert validate_refresh_token(db_session, payload.refresh_token) == str(u.id)

    res3 = client.get("/auth/session")
    assert res3.status_code == 200
    assert res3.json()["user"]["id"] == str(u.id)

    res4 = client.get("/users/me")
    assert res4.status_code == 200
    assert res4.json()["email"] == email

    # Logout revokes the refresh token and clears the cookie
    res5 = client.post("/auth/logout")
    assert res5.status_code == 200
    assert res5.json()["message"] == "Logged out"
    assert validate_refresh_token(db_session, payload.refresh_token) is None
    assert client.get("/auth/session").status_code == 401


def test_register_duplicate_email_is_409(client):
    res = client.post("/auth/register", json={"email": "TEST@example.com", "password": "Password_12345"})
    assert res.status_code == 409


def test_register_short_password_is_400(client):
    res = client.post("/auth/register", json={"email": "short@example.com", "password": "short"})
    assert res.status_code == 400
    assert "at least 8" in res.json()["message"]


def test_login_failures_share_one_message(client):
    unknown = client.post("/auth/login", json={"email": "nobody@example.com", "password": TEST_PASSWORD})
    wrong = client.post("/auth/login", json={"email": "test@example.com", "password": "wrong_password"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert unknown.json()["message"] == "Invalid email or password"


def test_login_replaces_previous_refresh_token(client, db_session, users):
    user, _ = users
    client.post("/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD})
    first = _session(client).refresh_token
    client.post("/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD})

    assert validate_refresh_token(db_session, first) is None
    assert db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).count() == 1


# ---------------------------------------------------------------------------
# Session lifecycle over HTTP
# ---------------------------------------------------------------------------


def test_session_without_cookie_is_401(client):
    assert client.get("/auth/session").status_code == 401
    assert client.get("/users/me").status_code == 401


def test_tampered_cookie_is_401(client):
    res = client.get("/auth/session", headers={"Cookie": f"{cookie_name()}=not-a-jwt"})
    assert res.status_code == 401


def test_expired_access_rotates_session_cookie(signed_in_client, db_session, monkeypatch):
    before = _session(signed_in_client)
    _travel(monkeypatch, session_lifecycle.ACCESS_TOKEN_TTL_SECONDS + 1)

    res = signed_in_client.get("/auth/session")
    assert res.status_code == 200
    assert res.json()["error"] is None

    after = _session(signed_in_client)
    assert after.refresh_token != before.refresh_token
    assert after.access_token_expires > before.access_token_expires
    assert validate_refresh_token(db_session, before.refresh_token) is None
    assert validate_refresh_token(db_session, after.refresh_token) == before.user_id


def test_revoked_session_expires_after_access_ttl(signed_in_client, db_session, users, monkeypatch):
    user, _ = users
    revoke_all_refresh_tokens(db_session, user.id)

    # Access expiry still in the future: the session is trusted without a lookup
    assert signed_in_client.get("/users/me").status_code == 200

    _travel(monkeypatch, session_lifecycle.ACCESS_TOKEN_TTL_SECONDS + 1)
    res = signed_in_client.get("/auth/session")
    assert res.status_code == 200
    assert res.json()["error"] == "RefreshTokenExpired"

    assert signed_in_client.get("/users/me").status_code == 401


def test_rotated_cookie_survives_failed_request(signed_in_client, db_session, monkeypatch):
    before = _session(signed_in_client)
    _travel(monkeypatch, session_lifecycle.ACCESS_TOKEN_TTL_SECONDS + 1)

    res = signed_in_client.post(
        "/users/me/change-password",
        json={"current_password": "wrong", "new_password": "brand_new_password"},
    )
    assert res.status_code == 400
    assert cookie_name() in res.cookies

    after = _session(signed_in_client)
    assert after.refresh_token != before.refresh_token
    assert validate_refresh_token(db_session, after.refresh_token) == before.user_id

    session = signed_in_client.get("/auth/session")
    assert session.status_code == 200
    assert session.json()["error"] is None


def test_rotated_cookie_survives_validation_error(signed_in_client, monkeypatch):
    before = _session(signed_in_client)
    _travel(monkeypatch, session_lifecycle.ACCESS_TOKEN_TTL_SECONDS + 1)

    res = signed_in_client.post("/users/me/change-password", json={})
    assert res.status_code == 422

    assert _session(signed_in_client).refresh_token != before.refresh_token
    assert signed_in_client.get("/auth/session").json()["error"] is None


def test_expired_tag_is_written_on_401(signed_in_client, db_session, users, monkeypatch):
    user, _ = users
    revoke_all_refresh_tokens(db_session, user.id)
    _travel(monkeypatch, session_lifecycle.ACCESS_TOKEN_TTL_SECONDS + 1)

    res = signed_in_client.get("/users/me")
    assert res.status_code == 401
    assert _session(signed_in_client).error == "RefreshTokenExpired"


def test_rotation_conflict_keeps_existing_cookie(signed_in_client, monkeypatch):
    raw_cookie = signed_in_client.cookies.get(cookie_name())
    _travel(monkeypatch, session_lifecycle.ACCESS_TOKEN_TTL_SECONDS + 1)

    def _conflict(*args, **kwargs):
        raise session_lifecycle.RefreshTokenRotationConflict("already rotated")

    monkeypatch.setattr(session_lifecycle, "rotate_refresh_token", _conflict)

    res = signed_in_client.get("/auth/session")
    assert res.status_code == 200
    assert res.json()["error"] == "RefreshTokenExpired"
    assert "set-cookie" not in res.headers
    assert signed_in_client.cookies.get(cookie_name()) == raw_cookie


# ---------------------------------------------------------------------------
# Headless refresh
# ---------------------------------------------------------------------------


def test_headless_refresh_rotates(signed_in_client, db_session):
    old = _session(signed_in_client).refresh_token

    res = signed_in_client.post("/auth/refresh", json={"refreshToken": old})
    assert res.status_code == 200
    body = res.json()
    assert body["refreshToken"] != old
    assert body["user"]["email"] == "test@example.com"

    # Old token is consumed
    res2 = signed_in_client.post("/auth/refresh", json={"refreshToken": old})
    assert res2.status_code == 401

    res3 = signed_in_client.post("/auth/refresh", json={"refreshToken": body["refreshToken"]})
    assert res3.status_code == 200


def test_headless_refresh_missing_token_is_400(client):
    assert client.post("/auth/refresh", json={}).status_code == 400
    assert client.post("/auth/refresh", json={"refreshToken": "  "}).status_code == 400


def test_headless_refresh_unknown_token_is_401(client):
    assert client.post("/auth/refresh", json={"refreshToken": "nope"}).status_code == 401


def test_headless_refresh_for_deleted_user_is_404(signed_in_client, db_session, monkeypatch):
    from app.routes import auth as auth_routes

    token = _session(signed_in_client).refresh_token
    monkeypatch.setattr(auth_routes, "get_user_by_id", lambda db, user_id: None)

    assert signed_in_client.post("/auth/refresh", json={"refreshToken": token}).status_code == 404


# ---------------------------------------------------------------------------
# Logout everywhere / password change
# ---------------------------------------------------------------------------


def test_logout_all_revokes_every_token(signed_in_client, db_session, users):
    user, _ = users
    res = signed_in_client.post("/auth/logout-all")
    assert res.status_code == 200
    assert db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).count() == 0


def test_logout_without_cookie_is_ok(client):
    res = client.post("/auth/logout")
    assert res.status_code == 200


def test_change_password_revokes_sessions(signed_in_client, db_session, users):
    user, _ = users
    res = signed_in_client.post(
        "/users/me/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "brand_new_password"},
    )
    assert res.status_code == 200
    assert db_session.query(RefreshToken).filter(RefreshToken.user_id == user.id).count() == 0

    assert signed_in_client.post(
        "/auth/login", json={"email": "test@example.com", "password": TEST_PASSWORD}
    ).status_code == 401
    assert signed_in_client.post(
        "/auth/login", json={"email": "test@example.com", "password": "brand_new_password"}
    ).status_code == 200


def test_change_password_wrong_current_is_400(signed_in_client):
    res = signed_in_client.post(
        "/users/me/change-password",
        json={"current_password": "wrong", "new_password": "brand_new_password"},
    )
    assert res.status_code == 400
