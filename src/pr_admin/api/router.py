"""Admin REST API — price-reduction cycle control."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.pr_admin.application.service import AdminService
from src.pr_common.database import get_db_session
from src.pr_common.datetime_utils import utc_now
from src.pr_common.response import ApiResponse, success_response
from src.pr_gateway.auth.webhook import verify_webhook_secret

router = APIRouter(prefix="/admin/price-reduction", tags=["admin"])
_service = AdminService()


class RunCycleRequest(BaseModel):
    # Manual runs default to dry-run; pass false to actually reduce prices
    dry_run: bool = True
    limit: int | None = Field(default=None, ge=1)


@router.post("/run", dependencies=[Depends(verify_webhook_secret)])
async def run_cycle(
    request: Request,
    body: RunCycleRequest | None = None,
) -> ApiResponse:
    body = body or RunCycleRequest()
    result = await _service.trigger_cycle(utc_now(), body.dry_run, body.limit)
    return success_response(result, request)


@router.get("/last-cycle")
async def last_cycle(request: Request) -> ApiResponse:
    return success_response(await _service.last_cycle(), request)


@router.get("/invariants")
async def invariants(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    return success_response(await _service.verify_invariants(db, utc_now()), request)
