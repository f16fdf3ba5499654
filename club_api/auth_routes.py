"""
Account and credential endpoints under /api/auth: register, login, Google sign-in, logout,
current user and profile, token refresh, password reset and the role dashboards.

Login-type endpoints return a short-lived access token in the body and set a long-lived
refresh token as an httpOnly cookie. GET /refresh trades that cookie for a new access token.
"""
import logging
import re
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from club_api.auth import RequireAdmin, RequireCoach, RequirePlayer, api_error, get_current_user
from club_api.config import (
    CLIENT_URL,
    COOKIE_SECURE,
    PASSWORD_MIN_LENGTH,
    REFRESH_COOKIE_NAME,
    REFRESH_COOKIE_PATH,
    REFRESH_TOKEN_EXPIRES,
    RESET_TOKEN_EXPIRES,
    ROLE_ADMIN,
    ROLE_COACH,
    ROLE_PLAYER,
)
from club_api.database import get_db
from club_api.models import User
from club_api.security import (
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    hash_reset_token,
    new_reset_token,
    verify_password,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class RegisterBody(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None


class LoginBody(BaseModel):
    email: str | None = None
    password: str | None = None


class GoogleLoginBody(BaseModel):
    googleId: str | None = None
    email: str | None = None
    name: str | None = None
    picture: str | None = None


class ProfileBody(BaseModel):
    name: str | None = None
    email: str | None = None


class ForgotPasswordBody(BaseModel):
    email: str | None = None


class ResetPasswordBody(BaseModel):
    password: str | None = None


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _check_password_length(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long",
        )


def deliver_reset_link(user: User, reset_url: str) -> None:
    """Hand the reset link to the user. No mailer is configured, so it goes to the log."""
    logger.info("Password reset link for user id=%s: %s", user.id, reset_url)


def _set_refresh_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=create_refresh_token(user),
        max_age=REFRESH_TOKEN_EXPIRES,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
    )


def _start_session(response: Response, user: User, message: str) -> dict:
    """Issue access token (body) and refresh token (cookie) for user."""
    _set_refresh_cookie(response, user)
    return {
        "success": True,
        "message": message,
        "user": user.to_public(),
        "token": create_access_token(user),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterBody, response: Response, db: Session = Depends(get_db)):
    """Create a player or coach account. Admins are seeded, never self-registered."""
    missing = [field for field in ("name", "email", "password") if not getattr(body, field)]
    if missing:
        raise api_error(status.HTTP_400_BAD_REQUEST, f"Missing required fields: {', '.join(missing)}")
    email = _normalize_email(body.email)
    if not _EMAIL_RE.match(email):
        raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid email format")
    _check_password_length(body.password)
    if body.role == ROLE_ADMIN:
        raise api_error(status.HTTP_403_FORBIDDEN, "Cannot self-register as admin")
    if db.query(User).filter(User.email == email).first() is not None:
        raise api_error(status.HTTP_400_BAD_REQUEST, "User already exists")

    role = ROLE_COACH if body.role == ROLE_COACH else ROLE_PLAYER
    user = User(name=body.name.strip(), email=email, password_hash=hash_password(body.password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user id=%s role=%s", user.id, user.role)
    return _start_session(response, user, "Registered successfully")


@router.post("/login")
def login(body: LoginBody, response: Response, db: Session = Depends(get_db)):
    """Email + password login. Same error for unknown email and wrong password."""
    user = db.query(User).filter(User.email == _normalize_email(body.email)).first()
    if user is None or not verify_password(body.password or "", user.password_hash):
        logger.info("Login failed")
        raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid credentials")
    logger.info("Login ok for user id=%s", user.id)
    return _start_session(response, user, "Login successful")


@router.post("/google-login")
def google_login(body: GoogleLoginBody, response: Response, db: Session = Depends(get_db)):
    """
    Sign in with a Google profile already verified by the client.
    Unknown email -> new player account; known email -> Google id linked on first use.
    """
    if not body.googleId or not body.email or not body.name:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Google ID, email, and name are required")
    email = _normalize_email(body.email)
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(
            name=body.name.strip(),
            email=email,
            google_id=body.googleId,
            avatar=body.picture,
            role=ROLE_PLAYER,
            is_google_user=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created Google user id=%s", user.id)
    elif not user.google_id:
        user.google_id = body.googleId
        user.avatar = body.picture
        user.is_google_user = True
        db.commit()
        logger.info("Linked Google id to user id=%s", user.id)
    return _start_session(response, user, "Google login successful")


@router.post("/logout")
def logout(response: Response):
    """Drop the refresh cookie. Access tokens simply expire."""
    response.delete_cookie(REFRESH_COOKIE_NAME, path=REFRESH_COOKIE_PATH)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return user.to_public()


@router.get("/profile")
def profile(user: User = Depends(get_current_user)):
    return {"success": True, "user": user.to_public()}


@router.put("/profile")
def update_profile(body: ProfileBody, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Change name and/or email. Blank fields are left as they are."""
    if body.email:
        email = _normalize_email(body.email)
        if not _EMAIL_RE.match(email):
            raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid email format")
        other = db.query(User).filter(User.email == email, User.id != user.id).first()
        if other is not None:
            raise api_error(status.HTTP_400_BAD_REQUEST, "Email already in use")
        user.email = email
    if body.name and body.name.strip():
        user.name = body.name.strip()
    db.commit()
    db.refresh(user)
    logger.info("Updated profile for user id=%s", user.id)
    return user.to_public()


@router.get("/refresh")
def refresh(request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Exchange the refresh cookie for a new access token; the cookie is rotated.
    401 when the cookie is missing, invalid, expired or its user is gone.
    """
    cookie = request.cookies.get(REFRESH_COOKIE_NAME)
    if not cookie:
        raise api_error(status.HTTP_401_UNAUTHORIZED, "No refresh token")
    try:
        claims = decode_token(cookie, TOKEN_TYPE_REFRESH)
    except jwt.InvalidTokenError as e:
        logger.debug("Refresh token rejected: %s", e)
        raise api_error(status.HTTP_401_UNAUTHORIZED, "Refresh token is invalid or expired")
    user = db.get(User, claims["id"])
    if user is None:
        raise api_error(status.HTTP_401_UNAUTHORIZED, "User not found")
    _set_refresh_cookie(response, user)
    logger.info("Token refreshed for user id=%s", user.id)
    return {"success": True, "message": "Token refreshed", "token": create_access_token(user)}


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordBody, db: Session = Depends(get_db)):
    """Issue a single-use reset token (stored hashed) and deliver the link to the user."""
    email = _normalize_email(body.email)
    if not email:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Email is required")
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise api_error(status.HTTP_404_NOT_FOUND, "User not found")
    token, token_hash = new_reset_token()
    user.reset_token_hash = token_hash
    user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(seconds=RESET_TOKEN_EXPIRES)
    db.commit()
    deliver_reset_link(user, f"{CLIENT_URL}/reset-password/{token}")
    return {"success": True, "message": "Reset link sent to your email"}


@router.post("/reset-password/{token}")
def reset_password(token: str, body: ResetPasswordBody, db: Session = Depends(get_db)):
    """Set a new password with a reset token; the token is consumed."""
    if not body.password:
        raise api_error(status.HTTP_400_BAD_REQUEST, "Password is required")
    _check_password_length(body.password)
    user = db.query(User).filter(User.reset_token_hash == hash_reset_token(token)).first()
    if (
        user is None
        or user.reset_token_expires_at is None
        or user.reset_token_expires_at.replace(tzinfo=timezone.utc) < datetime.now(timezone.utc)
    ):
        raise api_error(status.HTTP_400_BAD_REQUEST, "Invalid or expired token")
    user.password_hash = hash_password(body.password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    db.commit()
    logger.info("Password reset for user id=%s", user.id)
    return {"success": True, "message": "Password reset successful. You can now log in."}


@router.get("/player-dashboard")
def player_dashboard(user: User = RequirePlayer):
    return {"message": "Welcome to the Player Dashboard", "user": user.to_public()}


@router.get("/coach-dashboard")
def coach_dashboard(user: User = RequireCoach):
    return {"message": "Welcome to the Coach Dashboard", "user": user.to_public()}


@router.get("/admin-dashboard")
def admin_dashboard(user: User = RequireAdmin):
    return {"message": "Welcome to the Admin Dashboard", "user": user.to_public()}
