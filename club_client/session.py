"""
Auth session for the club client: login, Google sign-in, registration, profile, password
reset, logout and token verification. All API calls go through the dispatcher; results come
back as AuthResult values rather than exceptions, ready for a page to render.
"""
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from club_client.config import LOGIN_ROUTE
from club_client.credential_store import CredentialStore
from club_client.dispatcher import Dispatcher, RenewalError

logger = logging.getLogger(__name__)

ROLE_REDIRECTS = {
    "admin": "/admin-dashboard",
    "coach": "/coach-dashboard",
    "player": "/player-dashboard",
}
DEFAULT_REDIRECT = "/dashboard"


def redirect_for_role(role: str | None) -> str:
    return ROLE_REDIRECTS.get(role or "", DEFAULT_REDIRECT)


@dataclass
class AuthResult:
    success: bool
    redirect_to: str | None = None
    data: dict[str, Any] | None = None
    error: str | None = None


def error_message(exc: Exception) -> str:
    """The API's message for an HTTP error ({"detail": {"message": ...}} or {"message": ...}), else str(exc)."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail")
            if isinstance(detail, dict) and detail.get("message"):
                return str(detail["message"])
            if isinstance(detail, str) and detail:
                return detail
            if body.get("message"):
                return str(body["message"])
    return str(exc)


def _json_object(response: httpx.Response) -> dict[str, Any] | None:
    """The body as a dict; None when it is not JSON or not an object."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class AuthSession:
    def __init__(self, dispatcher: Dispatcher, store: CredentialStore) -> None:
        self.dispatcher = dispatcher
        self.store = store
        self.user: dict[str, Any] | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.store.get_token() is not None

    def restore(self) -> bool:
        """Pick up a user saved by a previous run. True when token and user were both stored."""
        if self.store.get_token() and self.store.get_user():
            self.user = self.store.get_user()
            return True
        return False

    async def login(self, email: str, password: str) -> AuthResult:
        return await self._authenticate("/auth/login", {"email": email, "password": password})

    async def google_login(self, google_data: dict[str, Any]) -> AuthResult:
        """google_data: googleId, email, name, picture from the Google profile."""
        return await self._authenticate("/auth/google-login", google_data)

    async def register(self, name: str, email: str, password: str, role: str = "player") -> AuthResult:
        # Only player and coach may self-register
        safe_role = "coach" if role == "coach" else "player"
        return await self._authenticate(
            "/auth/register",
            {"name": name, "email": email, "password": password, "role": safe_role},
        )

    async def _authenticate(self, path: str, payload: dict[str, Any]) -> AuthResult:
        try:
            response = await self.dispatcher.post(path, json=payload)
        except (httpx.HTTPError, RenewalError) as e:
            return AuthResult(success=False, error=error_message(e))
        data = _json_object(response)
        if not data or not data.get("token"):
            return AuthResult(success=False, error="No token received")
        user = data.get("user")
        if not isinstance(user, dict):
            user = {}
        self.store.set_token(data["token"])
        self.store.set_user(user)
        self.user = user
        logger.info("Signed in as user id=%s", user.get("id"))
        return AuthResult(success=True, redirect_to=redirect_for_role(user.get("role")), data=data)

    async def verify_token(self) -> dict[str, Any] | None:
        """
        Check the stored token against GET /auth/me and refresh the saved user.
        On failure the stored credentials are dropped. Returns the user or None.
        """
        if not self.store.get_token():
            return None
        try:
            response = await self.dispatcher.get("/auth/me")
        except (httpx.HTTPError, RenewalError) as e:
            logger.warning("Token verification failed: %s", e)
            self._forget()
            return None
        user = _json_object(response)
        if user is None:
            logger.warning("Token verification failed: /auth/me returned no user")
            self._forget()
            return None
        self.update_user(user)
        return user

    async def get_profile(self) -> AuthResult:
        try:
            response = await self.dispatcher.get("/auth/profile")
        except (httpx.HTTPError, RenewalError) as e:
            return AuthResult(success=False, error=error_message(e))
        data = _json_object(response)
        user = data.get("user") if data else None
        if not isinstance(user, dict):
            return AuthResult(success=False, error="No profile received")
        self.update_user(user)
        return AuthResult(success=True, data=user)

    async def update_profile(self, name: str | None = None, email: str | None = None) -> AuthResult:
        """PUT /auth/profile with the non-empty fields; the saved user follows the API's answer."""
        changes = {k: v for k, v in (("name", name), ("email", email)) if v}
        try:
            response = await self.dispatcher.put("/auth/profile", json=changes)
        except (httpx.HTTPError, RenewalError) as e:
            return AuthResult(success=False, error=error_message(e))
        user = _json_object(response)
        if user is None:
            return AuthResult(success=False, error="No profile received")
        self.update_user(user)
        return AuthResult(success=True, data=user)

    async def forgot_password(self, email: str) -> AuthResult:
        try:
            response = await self.dispatcher.post("/auth/forgot-password", json={"email": email})
        except (httpx.HTTPError, RenewalError) as e:
            return AuthResult(success=False, error=error_message(e))
        return AuthResult(success=True, data=_json_object(response))

    async def reset_password(self, token: str, password: str) -> AuthResult:
        try:
            response = await self.dispatcher.post(f"/auth/reset-password/{token}", json={"password": password})
        except (httpx.HTTPError, RenewalError) as e:
            return AuthResult(success=False, error=error_message(e))
        return AuthResult(success=True, redirect_to=LOGIN_ROUTE, data=_json_object(response))

    async def logout(self) -> None:
        """Tell the API (best effort) and always drop local credentials."""
        try:
            if self.store.get_token():
                await self.dispatcher.post("/auth/logout")
        except (httpx.HTTPError, RenewalError) as e:
            logger.warning("Logout error: %s", e)
        finally:
            self._forget()

    def update_user(self, user: dict[str, Any]) -> None:
        self.user = user
        self.store.set_user(user)

    def _forget(self) -> None:
        self.store.clear()
        self.user = None
