"""
Club web client. Login, registration, Google sign-in, profile, password reset and role
dashboards backed by the club API.
Every API call goes through the authenticated dispatcher; when a session cannot be renewed
the browser is sent back to /login. Port 8000.
"""
import html
import json
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from club_client.config import API_BASE_URL, LOGIN_ROUTE, REQUEST_TIMEOUT
from club_client.credential_store import open_store
from club_client.dispatcher import Dispatcher, RenewalError
from club_client.navigation import Navigator
from club_client.session import AuthSession, error_message, redirect_for_role

logger = logging.getLogger(__name__)


def _api_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=API_BASE_URL, timeout=REQUEST_TIMEOUT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """One API client, credential store, dispatcher and session for the process."""
    store = open_store()
    http = _api_client()
    dispatcher = Dispatcher(http, store, navigator=Navigator())
    session = AuthSession(dispatcher, store)
    if session.restore():
        logger.info("Restored saved session")
        # A token saved by an earlier run may be stale or revoked; drop it if the API disagrees
        if await session.verify_token() is None:
            logger.info("Saved session is no longer valid")
    app.state.auth = session
    try:
        yield
    finally:
        await http.aclose()


app = FastAPI(title="Club Web", version="0.1.0", lifespan=lifespan)


def get_auth_session(request: Request) -> AuthSession:
    session = request.app.state.auth
    # Pages know where the browser is; the dispatcher only redirects when it is not at login
    session.dispatcher.navigator.current = request.url.path
    return session


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
  {body}
  <p><a href="/">Home</a></p>
</body>
</html>""",
        status_code=status_code,
    )


def _to_login() -> RedirectResponse:
    return RedirectResponse(url=LOGIN_ROUTE, status_code=302)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "club_web"}


@app.get("/", response_class=HTMLResponse)
def home(session: AuthSession = Depends(get_auth_session)):
    """Home page: login link, or the signed-in user with dashboard and profile links."""
    if not session.is_authenticated:
        return _page("Sports Club Portal", '<p><a href="/login">Log in</a></p>')
    user = session.user
    name = html.escape(str(user.get("name") or user.get("email") or "player"))
    dashboard = redirect_for_role(user.get("role"))
    return _page(
        "Sports Club Portal",
        f"""<p>Signed in as {name}.</p>
  <p><a href="{dashboard}">Dashboard</a> | <a href="/me">Profile</a></p>
  <form method="post" action="/logout"><button type="submit">Log out</button></form>""",
    )


@app.get("/login", response_class=HTMLResponse)
def login_form():
    return _page(
        "Log in",
        """<form method="post" action="/login">
    <p><label>Email <input type="email" name="email" required></label></p>
    <p><label>Password <input type="password" name="password" required></label></p>
    <p><button type="submit">Log in</button></p>
  </form>
  <p><a href="/register">Create an account</a> | <a href="/forgot-password">Forgot password?</a></p>""",
    )


@app.post("/login")
async def login(
    email: str = Form(...),
    password: str = Form(...),
    session: AuthSession = Depends(get_auth_session),
):
    """Log in through the API; redirect to the role's dashboard on success."""
    result = await session.login(email, password)
    if not result.success:
        return _page(
            "Log in",
            f'<p>{html.escape(result.error or "Login failed")}</p><p><a href="/login">Try again</a></p>',
            status_code=400,
        )
    return RedirectResponse(url=result.redirect_to, status_code=302)


@app.get("/register", response_class=HTMLResponse)
def register_form():
    return _page(
        "Create an account",
        """<form method="post" action="/register">
    <p><label>Name <input type="text" name="name" required></label></p>
    <p><label>Email <input type="email" name="email" required></label></p>
    <p><label>Password <input type="password" name="password" required></label></p>
    <p><label>Role <select name="role"><option value="player">Player</option><option value="coach">Coach</option></select></label></p>
    <p><button type="submit">Register</button></p>
  </form>""",
    )


@app.post("/register")
async def register(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    role: str = Form("player"),
    session: AuthSession = Depends(get_auth_session),
):
    result = await session.register(name, email, password, role=role)
    if not result.success:
        return _page(
            "Create an account",
            f'<p>{html.escape(result.error or "Registration failed")}</p><p><a href="/register">Try again</a></p>',
            status_code=400,
        )
    return RedirectResponse(url=result.redirect_to, status_code=302)


@app.post("/google-login")
async def google_login(
    googleId: str = Form(...),
    email: str = Form(...),
    name: str = Form(...),
    picture: str = Form(""),
    session: AuthSession = Depends(get_auth_session),
):
    """Profile posted by the Google sign-in button, already verified in the browser."""
    result = await session.google_login({"googleId": googleId, "email": email, "name": name, "picture": picture or None})
    if not result.success:
        return _page(
            "Log in",
            f'<p>{html.escape(result.error or "Google login failed")}</p><p><a href="/login">Try again</a></p>',
            status_code=400,
        )
    return RedirectResponse(url=result.redirect_to, status_code=302)


@app.get("/forgot-password", response_class=HTMLResponse)
def forgot_password_form():
    return _page(
        "Forgot password",
        """<form method="post" action="/forgot-password">
    <p><label>Email <input type="email" name="email" required></label></p>
    <p><button type="submit">Send reset link</button></p>
  </form>""",
    )


@app.post("/forgot-password", response_class=HTMLResponse)
async def forgot_password(email: str = Form(...), session: AuthSession = Depends(get_auth_session)):
    result = await session.forgot_password(email)
    if not result.success:
        return _page("Forgot password", f"<p>{html.escape(result.error or 'Request failed')}</p>", status_code=400)
    message = (result.data or {}).get("message") or "Reset link sent to your email"
    return _page("Forgot password", f"<p>{html.escape(message)}</p>")


@app.get("/reset-password/{token}", response_class=HTMLResponse)
def reset_password_form(token: str):
    return _page(
        "Reset password",
        f"""<form method="post" action="/reset-password/{html.escape(token)}">
    <p><label>New password <input type="password" name="password" required></label></p>
    <p><button type="submit">Reset password</button></p>
  </form>""",
    )


@app.post("/reset-password/{token}")
async def reset_password(token: str, password: str = Form(...), session: AuthSession = Depends(get_auth_session)):
    result = await session.reset_password(token, password)
    if not result.success:
        return _page("Reset password", f"<p>{html.escape(result.error or 'Reset failed')}</p>", status_code=400)
    return RedirectResponse(url=result.redirect_to, status_code=302)


@app.post("/logout")
async def logout(session: AuthSession = Depends(get_auth_session)):
    await session.logout()
    return RedirectResponse(url="/", status_code=302)


@app.get("/me", response_class=HTMLResponse)
async def me(session: AuthSession = Depends(get_auth_session)):
    """Profile from GET /auth/me; keeps the saved user in sync."""
    if not session.store.get_token():
        return _to_login()
    try:
        r = await session.dispatcher.get("/auth/me")
    except RenewalError:
        return _to_login()
    except httpx.HTTPError as e:
        return _page("Profile", f"<p>Request failed: {html.escape(error_message(e))}</p>", status_code=502)
    user = r.json()
    session.update_user(user)
    return _page(
        "Profile",
        f"""<pre>{html.escape(json.dumps(user, indent=2))}</pre>
  <form method="post" action="/me">
    <p><label>Name <input type="text" name="name" value="{html.escape(str(user.get("name") or ""))}"></label></p>
    <p><label>Email <input type="email" name="email" value="{html.escape(str(user.get("email") or ""))}"></label></p>
    <p><button type="submit">Save</button></p>
  </form>""",
    )


@app.post("/me")
async def update_me(
    name: str = Form(""),
    email: str = Form(""),
    session: AuthSession = Depends(get_auth_session),
):
    """Profile edit: PUT /auth/profile, then back to the profile page."""
    if not session.store.get_token():
        return _to_login()
    result = await session.update_profile(name=name.strip() or None, email=email.strip() or None)
    if not result.success:
        if not session.store.get_token():
            return _to_login()
        return _page("Profile", f"<p>{html.escape(result.error or 'Update failed')}</p>", status_code=400)
    return RedirectResponse(url="/me", status_code=302)


async def _dashboard(session: AuthSession, role: str) -> HTMLResponse | RedirectResponse:
    if not session.store.get_token():
        return _to_login()
    path = f"/auth/{role}-dashboard"
    try:
        r = await session.dispatcher.get(path)
    except RenewalError:
        return _to_login()
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 403:
            return _page("Access denied", f"<p>{html.escape(error_message(e))}</p>", status_code=403)
        return _page("Dashboard", f"<p>Request failed: {html.escape(error_message(e))}</p>", status_code=502)
    except httpx.RequestError as e:
        return _page("Dashboard", f"<p>Request failed: {html.escape(str(e))}</p>", status_code=502)
    message = r.json().get("message", "")
    return _page("Dashboard", f"<p>{html.escape(message)}</p>")


@app.get("/dashboard")
async def dashboard(session: AuthSession = Depends(get_auth_session)):
    """Fallback dashboard: forwards to the signed-in role's dashboard."""
    if not session.is_authenticated:
        return _to_login()
    target = redirect_for_role(session.user.get("role"))
    if target == "/dashboard":
        return _page("Dashboard", "<p>No dashboard for this account.</p>")
    return RedirectResponse(url=target, status_code=302)


@app.get("/player-dashboard")
async def player_dashboard(session: AuthSession = Depends(get_auth_session)):
    return await _dashboard(session, "player")


@app.get("/coach-dashboard")
async def coach_dashboard(session: AuthSession = Depends(get_auth_session)):
    return await _dashboard(session, "coach")


@app.get("/admin-dashboard")
async def admin_dashboard(session: AuthSession = Depends(get_auth_session)):
    return await _dashboard(session, "admin")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "club_client.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
