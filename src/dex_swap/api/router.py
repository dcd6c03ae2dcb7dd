"""dex_swap REST endpoints.

POST /swaps/prepare                    — contract call + guard conditions for the wallet to sign
POST /swaps/submitted                  — register a broadcast tx id (duplicate / in-flight check)
POST /swaps/{transaction_id}/confirm   — poll to a terminal status, reconcile on success
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_common.database import get_db_session
from src.dex_common.redis_client import get_redis
from src.dex_common.response import ApiResponse, success_response
from src.dex_ledger.infrastructure.assets import configured_assets
from src.dex_ledger.infrastructure.hiro_client import get_ledger_client
from src.dex_pricing.infrastructure.pool_reader import PoolReader
from src.dex_reconcile.application.reconciler import LedgerReconciler
from src.dex_swap.application.orchestrator import POLL_TIMEOUT_SECONDS
from src.dex_swap.application.schemas import PrepareSwapRequest, SubmittedSwapRequest
from src.dex_swap.application.service import SwapApplicationService
from src.dex_swap.infrastructure.ledger_pool_source import LedgerPoolSource
from src.dex_swap.infrastructure.session_store import SessionStore

router = APIRouter(prefix="/swaps", tags=["swaps"])


async def get_swap_service() -> SwapApplicationService:
    redis = await get_redis()
    ledger = get_ledger_client()
    assets = configured_assets()
    source = LedgerPoolSource(ledger, PoolReader(ledger, redis), assets)
    return SwapApplicationService(
        source, SessionStore(redis), assets, reconciler=LedgerReconciler(assets, ledger)
    )


@router.post("/prepare")
async def prepare_swap(
    body: PrepareSwapRequest,
    request: Request,
    service: Annotated[SwapApplicationService, Depends(get_swap_service)],
) -> ApiResponse:
    result = await service.prepare(body)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/submitted")
async def swap_submitted(
    body: SubmittedSwapRequest,
    request: Request,
    service: Annotated[SwapApplicationService, Depends(get_swap_service)],
) -> ApiResponse:
    result = await service.submitted(body)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/{transaction_id}/confirm")
async def confirm_swap(
    transaction_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[SwapApplicationService, Depends(get_swap_service)],
    wallet: str = Query(..., min_length=1),
    timeout: float = Query(POLL_TIMEOUT_SECONDS, gt=0, le=POLL_TIMEOUT_SECONDS),
) -> ApiResponse:
    result = await service.confirm(wallet, transaction_id, db, timeout)
    return success_response(result.model_dump(mode="json"), request)
