"""
Seed the admin account from environment. Admins cannot self-register, so this is the only
way to create one. No hardcoded credentials.
Set CLUB_SEED_ADMIN_EMAIL + CLUB_SEED_ADMIN_PASSWORD (optional CLUB_SEED_ADMIN_NAME).
"""
import logging
import os

from sqlalchemy.orm import Session

from club_api.config import ROLE_ADMIN
from club_api.models import User
from club_api.security import hash_password

logger = logging.getLogger(__name__)


def seed_admin_from_env(db: Session) -> User | None:
    """Create the admin account if configured and missing. Returns the admin or None."""
    email = os.environ.get("CLUB_SEED_ADMIN_EMAIL", "").strip().lower()
    password = os.environ.get("CLUB_SEED_ADMIN_PASSWORD")
    if not email or not password:
        return None
    admin = db.query(User).filter(User.email == email).first()
    if admin is not None:
        logger.debug("Admin already exists: %s", email)
        return admin
    admin = User(
        name=os.environ.get("CLUB_SEED_ADMIN_NAME", "Administrator"),
        email=email,
        password_hash=hash_password(password),
        role=ROLE_ADMIN,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Seeded admin: %s", email)
    return admin
