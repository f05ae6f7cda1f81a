# backend/tests/conftest.py
import os

# In-memory SQLite and a non-production environment, set before the app reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-with-enough-length-for-hs256"
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("TURNSTILE_SECRET_KEY", None)
os.environ.pop("APP_URL", None)
os.environ.pop("NODE_METRICS_URL", None)

import httpx
import pytest

from waitlist.referral.leaderboard import LeaderboardService
from waitlist.referral.service import AttributionService, SignupRequest
from waitlist.storage.db import db


@pytest.fixture(autouse=True)
def database():
    """
    Clean schema for every test.
    """
    db.create_tables()
    try:
        yield db
    finally:
        db.drop_tables()


@pytest.fixture
def attribution(database) -> AttributionService:
    return AttributionService(database=database)


@pytest.fixture
def leaderboard(database) -> LeaderboardService:
    return LeaderboardService(database=database)


@pytest.fixture
def signup(attribution):
    """Shortcut: signup(email, code=None, **profile)."""
    def _signup(email: str, code: str | None = None, **fields):
        return attribution.signup(SignupRequest(email=email, referral_code=code, **fields))
    return _signup


@pytest.fixture
async def client():
    from waitlist.api.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
