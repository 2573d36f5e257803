import time

import itsdangerous.timed

from blueprints.auth import _admin_key_matches
from conftest import login


def _register(client, username, password="secret", **extra):
    payload = {"username": username, "password": password}
    payload.update(extra)
    return client.post("/api/auth/register", json=payload)


def test_first_user_becomes_admin(client):
    resp = _register(client, "Alice")
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["success"] is True
    assert data["isAdmin"] is True
    assert data["message"] == "Utilisateur créé avec succès"


def test_second_user_is_regular_without_admin_key(client):
    _register(client, "alice")
    resp = _register(client, "bob")
    assert resp.status_code == 201
    assert resp.get_json()["isAdmin"] is False


def test_admin_key_grants_admin_role(client):
    _register(client, "alice")
    assert _register(client, "bob", adminKey="wrong").get_json()["isAdmin"] is False
    assert _register(client, "carol", adminKey="admin-key").get_json()["isAdmin"] is True


def test_duplicate_username_rejected(client):
    _register(client, "alice")
    resp = _register(client, "ALICE")
    assert resp.status_code == 400
    assert resp.headers["Content-Type"] == "application/problem+json"
    assert "existe déjà" in resp.get_json()["error"]


def test_register_requires_credentials(client):
    resp = client.post("/api/auth/register", json={"username": "alice"})
    assert resp.status_code == 400


def test_login_sets_cookie_and_me_returns_identity(client):
    _register(client, "Alice")
    resp = login(client, "alice", "secret")
    assert resp.status_code == 200
    assert resp.get_json() == {
        "success": True,
        "user": {"username": "alice", "role": "admin"},
    }
    cookie = resp.headers["Set-Cookie"]
    assert cookie.startswith("auth_token=")
    assert "HttpOnly" in cookie

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.get_json()["username"] == "alice"
    assert me.get_json()["role"] == "admin"


def test_login_bad_password(client):
    _register(client, "alice")
    resp = login(client, "alice", "nope")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Identifiants invalides"


def test_login_unknown_user(client):
    resp = login(client, "ghost", "secret")
    assert resp.status_code == 401


def test_api_without_cookie_is_401(client):
    resp = client.get("/api/clients")
    assert resp.status_code == 401
    assert resp.headers["Content-Type"] == "application/problem+json"


def test_page_without_cookie_redirects_to_login(client):
    resp = client.get("/dashboard")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_forged_token_rejected(client):
    client.set_cookie("auth_token", "not-a-token")
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401


def test_logout_clears_cookie(admin_client):
    assert admin_client.get("/api/auth/me").status_code == 200
    resp = admin_client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert admin_client.get("/api/auth/me").status_code == 401


def test_expired_token(client, admin_user, monkeypatch):
    # Issue the token nine hours in the past
    monkeypatch.setattr(
        itsdangerous.timed.TimestampSigner,
        "get_timestamp",
        lambda self: int(time.time()) - 9 * 60 * 60,
    )
    assert login(client, "admin").status_code == 200
    monkeypatch.undo()

    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["detail"] == "Session expirée, veuillez vous reconnecter"


def test_healthz_is_public(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.data == b"OK"


def test_expired_token_redirects_pages_to_login(client, admin_user, monkeypatch):
    monkeypatch.setattr(
        itsdangerous.timed.TimestampSigner,
        "get_timestamp",
        lambda self: int(time.time()) - 9 * 60 * 60,
    )
    login(client, "admin")
    monkeypatch.undo()

    resp = client.get("/dashboard")
    assert resp.status_code == 302
    assert "/login?redirect=" in resp.headers["Location"]


def test_token_just_under_eight_hours_is_accepted(client, admin_user, monkeypatch):
    monkeypatch.setattr(
        itsdangerous.timed.TimestampSigner,
        "get_timestamp",
        lambda self: int(time.time()) - (8 * 60 * 60 - 60),
    )
    login(client, "admin")
    monkeypatch.undo()

    assert client.get("/api/auth/me").status_code == 200


def test_admin_key_comparison():
    assert _admin_key_matches("admin-key", "admin-key") is True
    assert _admin_key_matches("admin-kez", "admin-key") is False
    assert _admin_key_matches("clé-secrète", "admin-key") is False
    assert _admin_key_matches("", "admin-key") is False
    assert _admin_key_matches(None, "admin-key") is False
    assert _admin_key_matches("admin-key", None) is False


def test_non_ascii_admin_key_is_refused_not_crashing(client):
    _register(client, "alice")
    resp = _register(client, "bob", adminKey="clé-secrète")
    assert resp.status_code == 201
    assert resp.get_json()["isAdmin"] is False
