"""
Pytest configuration for club_api. In-memory SQLite and a fixed signing secret so tests
don't touch the filesystem and tokens stay verifiable across modules.
"""
import os

# In-memory SQLite; database.py uses StaticPool so all connections share the same DB
os.environ["CLUB_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CLUB_JWT_SECRET"] = "test-secret-not-for-production-use-0123456789"
# Avoid seeding an admin from the developer's environment
for name in ("CLUB_SEED_ADMIN_EMAIL", "CLUB_SEED_ADMIN_PASSWORD", "CLUB_SEED_ADMIN_NAME"):
    os.environ.pop(name, None)
