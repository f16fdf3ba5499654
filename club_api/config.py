"""
Club API configuration. Values come from the environment; defaults suit local development.
No secrets in this file.
"""
import os
import secrets

# SQLite DB for development; tests use sqlite:///:memory:
DATABASE_URL = os.environ.get("CLUB_DATABASE_URL", "sqlite:///./club_api.db")

# HS256 signing secret. Unset -> random per process, so issued tokens die with the process.
JWT_SECRET = os.environ.get("CLUB_JWT_SECRET") or secrets.token_urlsafe(32)
JWT_ALGORITHM = "HS256"

# Access token lifetime (seconds). Short-lived; clients renew through GET /api/auth/refresh
ACCESS_TOKEN_EXPIRES = int(os.environ.get("CLUB_ACCESS_TOKEN_EXPIRES", "900"))

# Refresh token lifetime (seconds). Default 7 days
REFRESH_TOKEN_EXPIRES = int(os.environ.get("CLUB_REFRESH_TOKEN_EXPIRES", str(7 * 24 * 60 * 60)))

# Refresh token travels only as an httpOnly cookie scoped to the auth routes
REFRESH_COOKIE_NAME = "refresh_token"
REFRESH_COOKIE_PATH = "/api/auth"
COOKIE_SECURE = os.environ.get("CLUB_COOKIE_SECURE", "").strip().lower() in {"1", "true", "yes", "on"}

PASSWORD_MIN_LENGTH = 6

# Password reset links point at the web client and stay valid for 15 minutes
CLIENT_URL = os.environ.get("CLUB_CLIENT_URL", "http://127.0.0.1:8000").rstrip("/")
RESET_TOKEN_EXPIRES = int(os.environ.get("CLUB_RESET_TOKEN_EXPIRES", str(15 * 60)))

ROLE_PLAYER = "player"
ROLE_COACH = "coach"
ROLE_ADMIN = "admin"
ROLES = {ROLE_PLAYER, ROLE_COACH, ROLE_ADMIN}
