"""
Password hashing (bcrypt), access/refresh token signing (HS256 JWT) and password reset tokens.
"""
import hashlib
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from club_api.config import ACCESS_TOKEN_EXPIRES, JWT_ALGORITHM, JWT_SECRET, REFRESH_TOKEN_EXPIRES
from club_api.models import User

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def _bcrypt_bytes(password: str) -> bytes:
    # Bcrypt has a 72-byte limit
    raw = password.encode("utf-8")
    return raw[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_bcrypt_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """False for accounts without a password (Google sign-in only)."""
    if not hashed:
        return False
    return bcrypt.checkpw(_bcrypt_bytes(plain), hashed.encode("utf-8"))


def _sign(user: User, token_type: str, expires_in: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "role": user.role,
        "typ": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    token = jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


def create_access_token(user: User, expires_in: int = ACCESS_TOKEN_EXPIRES) -> str:
    return _sign(user, TOKEN_TYPE_ACCESS, expires_in)


def create_refresh_token(user: User, expires_in: int = REFRESH_TOKEN_EXPIRES) -> str:
    return _sign(user, TOKEN_TYPE_REFRESH, expires_in)


def decode_token(token: str, expected_type: str) -> dict:
    """
    Verify signature and exp, and check the token type claim.
    Raises jwt.InvalidTokenError (ExpiredSignatureError included) on any problem.
    """
    claims = jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "iat"]},
    )
    if claims.get("typ") != expected_type:
        raise jwt.InvalidTokenError(f"Expected {expected_type} token")
    if not isinstance(claims.get("id"), int):
        raise jwt.InvalidTokenError("Token has no user id")
    return claims


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def new_reset_token() -> tuple[str, str]:
    """Random reset token for the emailed link, and the hash to store."""
    token = secrets.token_hex(32)
    return token, hash_reset_token(token)
