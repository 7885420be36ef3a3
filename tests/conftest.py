"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from config.settings import settings
from src.main import app

TEST_WEBHOOK_SECRET = "test-webhook-secret"


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for the FastAPI app (no lifespan: DB/Redis untouched)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def webhook_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    """Enable the manual trigger endpoint with a known secret."""
    monkeypatch.setattr(settings, "WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    return TEST_WEBHOOK_SECRET
