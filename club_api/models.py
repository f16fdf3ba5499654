"""
SQLAlchemy models for the club API. Only the account record lives here; club, match and
tournament data belong to other services.
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from club_api.config import ROLE_PLAYER


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Stored lowercase; login looks it up the same way
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    # None for accounts created through Google sign-in
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_PLAYER)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    avatar: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_google_user: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    # SHA-256 of the emailed reset token; the raw token is never stored
    reset_token_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_token_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def to_public(self) -> dict:
        """Account fields safe to return to clients (never the password hash)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "avatar": self.avatar,
            "isGoogleUser": self.is_google_user,
        }
