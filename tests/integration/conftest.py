"""Integration-test fixtures.

Needs a migrated PostgreSQL (alembic upgrade head, including the demo seed)
and Redis reachable via .env. Run with: pytest -m integration

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created lazily on first use)
remain valid across the entire test session.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.settings import settings
from src.main import app

INTEGRATION_SECRET = "integration-secret"


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client, keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="session")
def trigger_headers() -> dict[str, str]:
    settings.WEBHOOK_SECRET = INTEGRATION_SECRET
    return {"X-Webhook-Secret": INTEGRATION_SECRET}
