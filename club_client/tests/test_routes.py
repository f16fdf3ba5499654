"""Tests for the club web client routes, with the club API faked by httpx.MockTransport."""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from club_client import main
from club_client.credential_store import MemoryCredentialStore
from club_client.dispatcher import Dispatcher
from club_client.main import app
from club_client.navigation import Navigator
from club_client.session import AuthSession

USER = {"id": 3, "name": "Ana", "email": "ana@example.com", "role": "player"}


class FakeClubApi:
    """Accepts tok1 and tok2; refresh hands out tok2 unless refresh_ok is False."""

    def __init__(self):
        self.refresh_ok = True
        self.paths: list[str] = []
        self.google_profiles: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.paths.append(path)
        authorized = request.headers.get("Authorization") in ("Bearer tok1", "Bearer tok2")
        if path == "/api/auth/login":
            body = json.loads(request.content)
            if body == {"email": "ana@example.com", "password": "secret1"}:
                return httpx.Response(200, json={"success": True, "user": USER, "token": "tok1"})
            return httpx.Response(400, json={"detail": {"success": False, "message": "Invalid credentials"}})
        if path == "/api/auth/register":
            body = json.loads(request.content)
            if body["email"] == "taken@example.com":
                return httpx.Response(400, json={"detail": {"success": False, "message": "User already exists"}})
            user = {"id": 4, "name": body["name"], "email": body["email"], "role": body["role"]}
            return httpx.Response(201, json={"success": True, "user": user, "token": "tok1"})
        if path == "/api/auth/google-login":
            body = json.loads(request.content)
            self.google_profiles.append(body)
            user = {"id": 5, "name": body["name"], "email": body["email"], "role": "player", "avatar": body["picture"]}
            return httpx.Response(200, json={"success": True, "user": user, "token": "tok1"})
        if path == "/api/auth/forgot-password":
            body = json.loads(request.content)
            if body["email"] != "ana@example.com":
                return httpx.Response(404, json={"detail": {"success": False, "message": "User not found"}})
            return httpx.Response(200, json={"success": True, "message": "Reset link sent to your email"})
        if path.startswith("/api/auth/reset-password/"):
            if path.endswith("/good-token"):
                return httpx.Response(200, json={"success": True, "message": "Password reset successful. You can now log in."})
            return httpx.Response(400, json={"detail": {"success": False, "message": "Invalid or expired token"}})
        if path == "/api/auth/logout":
            return httpx.Response(200, json={"success": True})
        if path == "/api/auth/refresh":
            if self.refresh_ok:
                return httpx.Response(200, json={"success": True, "token": "tok2"})
            return httpx.Response(401, json={"detail": {"success": False, "message": "No refresh token"}})
        if not authorized:
            return httpx.Response(401, json={"detail": {"success": False, "message": "Token is invalid or expired"}})
        if path == "/api/auth/me":
            return httpx.Response(200, json=USER)
        if path == "/api/auth/profile" and request.method == "PUT":
            body = json.loads(request.content)
            if body.get("email") == "taken@example.com":
                return httpx.Response(400, json={"detail": {"success": False, "message": "Email already in use"}})
            return httpx.Response(200, json={**USER, **body})
        if path == "/api/auth/player-dashboard":
            return httpx.Response(200, json={"message": "Welcome to the Player Dashboard"})
        if path in ("/api/auth/coach-dashboard", "/api/auth/admin-dashboard"):
            return httpx.Response(403, json={"detail": {"success": False, "message": "Forbidden: insufficient role"}})
        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def api():
    return FakeClubApi()


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def session(api, store):
    http = httpx.AsyncClient(transport=httpx.MockTransport(api), base_url="http://api.test/api")
    session = AuthSession(Dispatcher(http, store, navigator=Navigator()), store)
    app.state.auth = session
    return session


@pytest.fixture
def client(session):
    return TestClient(app)


def _sign_in(store, session, token="tok1"):
    store.set_token(token)
    store.set_user(USER)
    session.user = USER


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("service") == "club_web"


def test_home_anonymous_links_to_login(client):
    r = client.get("/")
    assert r.status_code == 200
    assert 'href="/login"' in r.text


def test_home_signed_in_shows_user(client, store, session):
    _sign_in(store, session)
    r = client.get("/")
    assert "Signed in as Ana" in r.text
    assert "/player-dashboard" in r.text


def test_login_form(client):
    r = client.get("/login")
    assert r.status_code == 200
    assert 'name="email"' in r.text
    assert 'name="password"' in r.text


def test_login_redirects_to_role_dashboard(client, store):
    r = client.post("/login", data={"email": "ana@example.com", "password": "secret1"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/player-dashboard"
    assert store.get_token() == "tok1"
    assert store.get_user() == USER


def test_login_failure_shows_message(client, store):
    r = client.post("/login", data={"email": "ana@example.com", "password": "nope"}, follow_redirects=False)
    assert r.status_code == 400
    assert "Invalid credentials" in r.text
    assert store.get_token() is None


def test_dashboard_without_token_redirects_to_login(client):
    r = client.get("/player-dashboard", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login"


def test_player_dashboard(client, store, session):
    _sign_in(store, session)
    r = client.get("/player-dashboard")
    assert r.status_code == 200
    assert "Welcome to the Player Dashboard" in r.text


def test_stale_token_renewed_transparently(client, api, store, session):
    _sign_in(store, session, token="expired")
    r = client.get("/player-dashboard")
    assert r.status_code == 200
    assert "Welcome to the Player Dashboard" in r.text
    assert store.get_token() == "tok2"
    assert api.paths.count("/api/auth/refresh") == 1


def test_failed_renewal_sends_browser_to_login(client, api, store, session):
    api.refresh_ok = False
    _sign_in(store, session, token="expired")
    r = client.get("/player-dashboard", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login"
    assert store.get_token() is None
    assert store.get_user() is None
    assert session.dispatcher.navigator.redirects == ["/login"]


def test_forbidden_dashboard(client, store, session):
    _sign_in(store, session)
    r = client.get("/coach-dashboard")
    assert r.status_code == 403
    assert "Access denied" in r.text
    assert "insufficient role" in r.text
    assert store.get_token() == "tok1"


def test_dashboard_forwards_to_role(client, store, session):
    _sign_in(store, session)
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/player-dashboard"


def test_me_shows_profile_and_updates_user(client, store, session):
    _sign_in(store, session)
    session.user = {"id": 3, "name": "Stale"}
    r = client.get("/me")
    assert r.status_code == 200
    assert "ana@example.com" in r.text
    assert session.user == USER


def test_logout_clears_credentials(client, api, store, session):
    _sign_in(store, session)
    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"
    assert "/api/auth/logout" in api.paths
    assert store.get_token() is None
    assert session.user is None


def test_register_redirects_to_role_dashboard(client, store):
    r = client.post(
        "/register",
        data={"name": "Carla", "email": "carla@example.com", "password": "secret1", "role": "coach"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["location"] == "/coach-dashboard"
    assert store.get_user()["name"] == "Carla"


def test_register_failure_shows_message(client):
    r = client.post("/register", data={"name": "T", "email": "taken@example.com", "password": "secret1"})
    assert r.status_code == 400
    assert "User already exists" in r.text


def test_register_form(client):
    r = client.get("/register")
    assert r.status_code == 200
    assert 'name="role"' in r.text


def test_google_login_forwards_profile(client, api, store):
    r = client.post(
        "/google-login",
        data={"googleId": "g-1", "email": "gina@example.com", "name": "Gina"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["location"] == "/player-dashboard"
    assert api.google_profiles == [{"googleId": "g-1", "email": "gina@example.com", "name": "Gina", "picture": None}]
    assert store.get_token() == "tok1"


def test_update_profile_from_page(client, store, session):
    _sign_in(store, session)
    r = client.post("/me", data={"name": "Ana B", "email": ""}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/me"
    assert store.get_user()["name"] == "Ana B"
    assert session.user["email"] == "ana@example.com"


def test_update_profile_error_shown(client, store, session):
    _sign_in(store, session)
    r = client.post("/me", data={"email": "taken@example.com"})
    assert r.status_code == 400
    assert "Email already in use" in r.text


def test_update_profile_without_token_redirects_to_login(client):
    r = client.post("/me", data={"name": "X"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login"


def test_forgot_password_pages(client):
    assert 'name="email"' in client.get("/forgot-password").text
    r = client.post("/forgot-password", data={"email": "ana@example.com"})
    assert r.status_code == 200
    assert "Reset link sent to your email" in r.text
    r = client.post("/forgot-password", data={"email": "nobody@example.com"})
    assert r.status_code == 400
    assert "User not found" in r.text


def test_reset_password_pages(client):
    assert 'action="/reset-password/good-token"' in client.get("/reset-password/good-token").text
    r = client.post("/reset-password/good-token", data={"password": "new-secret"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login"
    r = client.post("/reset-password/old-token", data={"password": "new-secret"})
    assert r.status_code == 400
    assert "Invalid or expired token" in r.text


def _start_with_saved_session(monkeypatch, api, token):
    saved = MemoryCredentialStore()
    saved.set_token(token)
    saved.set_user({"id": 3, "name": "Stale"})
    monkeypatch.setattr(main, "open_store", lambda: saved)
    monkeypatch.setattr(
        main, "_api_client", lambda: httpx.AsyncClient(transport=httpx.MockTransport(api), base_url="http://api.test/api")
    )
    with TestClient(app):
        session = app.state.auth
    return saved, session


def test_startup_verifies_saved_session(monkeypatch, api):
    saved, session = _start_with_saved_session(monkeypatch, api, "tok1")
    assert "/api/auth/me" in api.paths
    assert session.user == USER
    assert saved.get_user() == USER


def test_startup_drops_saved_session_that_cannot_be_renewed(monkeypatch, api):
    api.refresh_ok = False
    saved, session = _start_with_saved_session(monkeypatch, api, "expired")
    assert session.user is None
    assert saved.get_token() is None
    assert saved.get_user() is None
