"""pr_listing REST endpoints.

GET  /listings/{listing_id}                    — listing with reduction settings
PUT  /listings/{listing_id}/reduction-settings — replace settings (validated)
POST /listings/{listing_id}/reduction-toggle   — enable / disable
POST /listings/{listing_id}/reduce             — manual one-off reduction
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_common.database import get_db_session
from src.pr_common.datetime_utils import utc_now
from src.pr_common.response import ApiResponse, success_response
from src.pr_listing.application.schemas import (
    ManualReduceRequest,
    ReductionSettingsRequest,
    ToggleRequest,
)
from src.pr_listing.application.service import ListingApplicationService

router = APIRouter(prefix="/listings", tags=["listings"])

_service = ListingApplicationService()


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    detail = await _service.get_listing(db, listing_id)
    return success_response(detail.model_dump(mode="json"), request)


@router.put("/{listing_id}/reduction-settings")
async def update_reduction_settings(
    listing_id: str,
    body: ReductionSettingsRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    detail = await _service.update_reduction_settings(db, listing_id, body)
    return success_response(detail.model_dump(mode="json"), request)


@router.post("/{listing_id}/reduction-toggle")
async def toggle_reduction(
    listing_id: str,
    body: ToggleRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    detail = await _service.set_reduction_enabled(db, listing_id, body.enabled, utc_now())
    return success_response(detail.model_dump(mode="json"), request)


@router.post("/{listing_id}/reduce")
async def manual_reduce(
    listing_id: str,
    body: ManualReduceRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.manual_reduce(db, listing_id, body, utc_now())
    return success_response(result.model_dump(), request)
