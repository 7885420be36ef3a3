"""pr_history REST endpoints.

GET /listings/{listing_id}/price-history — newest first, cursor pagination
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_common.database import get_db_session
from src.pr_common.response import ApiResponse, success_response
from src.pr_history.application.service import HistoryApplicationService

router = APIRouter(prefix="/listings", tags=["price-history"])

_service = HistoryApplicationService()


@router.get("/{listing_id}/price-history")
async def list_price_history(
    listing_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_history(db, listing_id, cursor, limit)
    return success_response(result.model_dump(), request)
