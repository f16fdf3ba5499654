"""
Bearer authentication and role checks for protected club API routes.
"""
import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from club_api.config import ROLE_ADMIN, ROLE_COACH, ROLE_PLAYER
from club_api.database import get_db
from club_api.models import User
from club_api.security import TOKEN_TYPE_ACCESS, decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def api_error(status_code: int, message: str, headers: dict[str, str] | None = None) -> HTTPException:
    """HTTPException in the API's error shape: {"detail": {"success": false, "message": ...}}."""
    return HTTPException(
        status_code=status_code,
        detail={"success": False, "message": message},
        headers=headers,
    )


def _unauthorized(message: str) -> HTTPException:
    return api_error(status.HTTP_401_UNAUTHORIZED, message, headers={"WWW-Authenticate": "Bearer"})


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Extract Bearer token from Authorization header. Raises 401 if missing."""
    if credentials is None:
        raise _unauthorized("Not authorized, no token")
    return credentials.credentials


def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    db: Session = Depends(get_db),
) -> User:
    """Dependency: valid access token -> User. 401 on any token problem."""
    try:
        claims = decode_token(token, TOKEN_TYPE_ACCESS)
    except jwt.InvalidTokenError as e:
        logger.debug("Access token rejected: %s", e)
        raise _unauthorized("Token is invalid or expired")
    user = db.get(User, claims["id"])
    if user is None:
        raise _unauthorized("User not found")
    return user


def require_role(*roles: str):
    """Dependency factory: require the current user to hold one of the given roles."""

    def _check(user: Annotated[User, Depends(get_current_user)]) -> User:
        if user.role not in roles:
            raise api_error(status.HTTP_403_FORBIDDEN, "Forbidden: insufficient role")
        return user

    return Depends(_check)


RequirePlayer = require_role(ROLE_PLAYER)
RequireCoach = require_role(ROLE_COACH)
RequireAdmin = require_role(ROLE_ADMIN)
