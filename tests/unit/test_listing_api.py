"""Router tests for /listings endpoints (service mocked, AppError handler exercised)."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from reduction_fakes import make_listing

from src.main import app
from src.pr_common.database import get_db_session
from src.pr_common.errors import ListingNotFoundError, PriceNotLowerError
from src.pr_listing.api import router as listing_router
from src.pr_listing.application.schemas import ListingDetail, ManualReduceResponse


@pytest.fixture(autouse=True)
def fake_db() -> AsyncGenerator[MagicMock, None]:
    db = MagicMock()

    async def override() -> AsyncGenerator[MagicMock, None]:
        yield db

    app.dependency_overrides[get_db_session] = override
    yield db
    app.dependency_overrides.pop(get_db_session, None)


@pytest.fixture
def service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    svc = MagicMock()
    detail = ListingDetail.from_domain(make_listing())
    svc.get_listing = AsyncMock(return_value=detail)
    svc.update_reduction_settings = AsyncMock(return_value=detail)
    svc.set_reduction_enabled = AsyncMock(return_value=detail)
    svc.manual_reduce = AsyncMock()
    monkeypatch.setattr(listing_router, "_service", svc)
    return svc


async def test_get_listing(client, service) -> None:
    resp = await client.get("/api/v1/listings/LST-1")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == "LST-1"
    assert data["current_price"] == "100.00"


async def test_get_listing_not_found(client, service) -> None:
    service.get_listing.side_effect = ListingNotFoundError("LST-X")
    resp = await client.get("/api/v1/listings/LST-X")
    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == 1001
    assert body["data"] is None


async def test_update_settings_validates_body(client, service) -> None:
    resp = await client.put(
        "/api/v1/listings/LST-1/reduction-settings",
        json={"minimum_price": "-5", "reduction_strategy": "fixed_percentage"},
    )
    assert resp.status_code == 422
    service.update_reduction_settings.assert_not_awaited()


async def test_update_settings(client, service) -> None:
    resp = await client.put(
        "/api/v1/listings/LST-1/reduction-settings",
        json={"minimum_price": "60.00", "reduction_percentage": "7.5"},
    )
    assert resp.status_code == 200
    req = service.update_reduction_settings.await_args.args[2]
    assert str(req.minimum_price) == "60.00"


async def test_toggle(client, service) -> None:
    resp = await client.post("/api/v1/listings/LST-1/reduction-toggle", json={"enabled": True})
    assert resp.status_code == 200
    assert service.set_reduction_enabled.await_args.args[2] is True


async def test_manual_reduce(client, service) -> None:
    service.manual_reduce.return_value = ManualReduceResponse(
        listing_id="LST-1", old_price="100.00", new_price="85.00",
        reason="manual", strategy=None,
    )
    resp = await client.post("/api/v1/listings/LST-1/reduce", json={"custom_price": "85.00"})
    assert resp.status_code == 200
    assert resp.json()["data"]["new_price"] == "85.00"


async def test_manual_reduce_not_lower(client, service) -> None:
    service.manual_reduce.side_effect = PriceNotLowerError("120.00", "100.00")
    resp = await client.post("/api/v1/listings/LST-1/reduce", json={"custom_price": "120.00"})
    assert resp.status_code == 422
    assert resp.json()["code"] == 1003


async def test_request_id_matches_envelope(client, service) -> None:
    resp = await client.get("/api/v1/listings/LST-1")
    assert resp.headers["X-Request-ID"] == resp.json()["request_id"]
