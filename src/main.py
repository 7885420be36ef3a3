"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.pr_admin.api.router import router as admin_router
from src.pr_common.database import engine
from src.pr_common.errors import AppError
from src.pr_common.redis_client import close_redis, get_redis
from src.pr_common.response import error_response
from src.pr_engine.runner import get_batch_runner
from src.pr_engine.scheduler import ReductionScheduler
from src.pr_gateway.middleware.request_log import RequestLogMiddleware
from src.pr_history.api.router import router as history_router
from src.pr_listing.api.router import router as listing_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: logging, DB + Redis checks, scheduler. Shutdown: reverse order."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()

    scheduler: ReductionScheduler | None = None
    if settings.SCHEDULER_ENABLED:
        scheduler = ReductionScheduler(
            get_batch_runner(), settings.REDUCTION_CYCLE_INTERVAL_SECONDS
        )
        scheduler.start()
    yield
    # Shutdown
    if scheduler is not None:
        await scheduler.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(listing_router, prefix="/api/v1")
app.include_router(history_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
