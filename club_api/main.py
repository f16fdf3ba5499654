"""
Club API: accounts and credentials for the sports club portal.
Register / login / Google sign-in issue tokens; GET /api/auth/refresh renews them.
Port 5000.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from club_api.auth_routes import router as auth_router
from club_api.database import SessionLocal, init_db
from club_api.seed import seed_admin_from_env


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed the admin account from env on startup."""
    init_db()
    db = SessionLocal()
    try:
        seed_admin_from_env(db)
    finally:
        db.close()
    yield


app = FastAPI(title="Club API", version="0.1.0", lifespan=lifespan)
app.include_router(auth_router, tags=["auth"])


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "club_api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "club_api.main:app",
        host="127.0.0.1",
        port=5000,
        reload=True,
    )
