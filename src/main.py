"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.dex_analytics.api.router import router as analytics_router
from src.dex_common.database import engine, ping_database
from src.dex_common.errors import AppError
from src.dex_common.middleware.request_log import RequestLogMiddleware
from src.dex_common.redis_client import close_redis, ping_redis
from src.dex_common.response import error_response
from src.dex_ledger.infrastructure.assets import configured_assets
from src.dex_ledger.infrastructure.hiro_client import close_ledger_client, get_ledger_client
from src.dex_pricing.api.router import router as pricing_router
from src.dex_reconcile.api.router import router as reconcile_router
from src.dex_reconcile.application.reconciler import LedgerReconciler
from src.dex_reconcile.application.sync_loop import run_sync_loop
from src.dex_swap.api.router import router as swap_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start contract sync. Shutdown: dispose."""
    # Startup
    await ping_database()
    await ping_redis()
    sync_task: asyncio.Task[None] | None = None
    if settings.RECONCILE_INTERVAL_SECONDS > 0:
        reconciler = LedgerReconciler(configured_assets(), get_ledger_client())
        sync_task = asyncio.create_task(
            run_sync_loop(reconciler, settings.RECONCILE_INTERVAL_SECONDS)
        )
        logger.info("Contract sync every %ds", settings.RECONCILE_INTERVAL_SECONDS)
    yield
    # Shutdown
    if sync_task is not None:
        sync_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sync_task
    await close_ledger_client()
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


app.include_router(pricing_router, prefix="/api/v1")
app.include_router(swap_router, prefix="/api/v1")
app.include_router(reconcile_router, prefix="/api/v1")
app.include_router(analytics_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
