"""dex_reconcile REST endpoints.

GET  /trades                          — reconciled trades for a wallet (cursor pagination)
GET  /trades/{transaction_id}         — one trade record
GET  /transactions/{transaction_id}   — status: direct ledger lookup wins over the store
POST /reconcile/sync                  — pull recent contract history + backfill
POST /reconcile/backfill              — re-derive incomplete rows from raw payloads
POST /reconcile/{transaction_id}      — reconcile a single confirmed transaction
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_common.database import get_db_session
from src.dex_common.datetime_utils import window_start
from src.dex_common.response import ApiResponse, success_response
from src.dex_ledger.infrastructure.assets import configured_assets
from src.dex_ledger.infrastructure.hiro_client import get_ledger_client
from src.dex_reconcile.application.reconciler import LedgerReconciler
from src.dex_reconcile.application.schemas import (
    BackfillResponse,
    ReconcileResultResponse,
    SyncResponse,
    TradeListResponse,
    TradeRecordResponse,
    TransactionStatusResponse,
)

router = APIRouter(tags=["reconcile"])


def get_reconciler() -> LedgerReconciler:
    return LedgerReconciler(configured_assets(), get_ledger_client())


@router.get("/trades")
async def list_trades(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    reconciler: Annotated[LedgerReconciler, Depends(get_reconciler)],
    wallet: str = Query(..., min_length=1),
    window_days: int | None = Query(None, ge=1, le=3650),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    items = await reconciler.list_records(
        wallet, window_start(window_days), limit + 1, cursor, db
    )
    has_more = len(items) > limit
    if has_more:
        items = items[:limit]
    next_cursor = items[-1].transaction_id if has_more and items else None
    data = TradeListResponse(
        items=[TradeRecordResponse.from_domain(t) for t in items],
        has_more=has_more,
        next_cursor=next_cursor,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.get("/trades/{transaction_id}")
async def get_trade(
    transaction_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    reconciler: Annotated[LedgerReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    record = await reconciler.get_record(transaction_id, db)
    return success_response(TradeRecordResponse.from_domain(record).model_dump(mode="json"), request)


@router.get("/transactions/{transaction_id}")
async def transaction_status(
    transaction_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    reconciler: Annotated[LedgerReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    status, direct, recorded = await reconciler.transaction_status(transaction_id, db)
    data = TransactionStatusResponse(
        transaction_id=transaction_id,
        status=status,
        ledger_status=direct.tx_status if direct else None,
        function_name=direct.function_name if direct else None,
        block_height=direct.block_height if direct else None,
        recorded=recorded,
    )
    return success_response(data.model_dump(mode="json"), request)


@router.post("/reconcile/sync")
async def sync_contract_history(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    reconciler: Annotated[LedgerReconciler, Depends(get_reconciler)],
    limit: int = Query(50, ge=1, le=50),
) -> ApiResponse:
    result = await reconciler.sync_recent(db, limit)
    return success_response(SyncResponse.from_domain(result).model_dump(), request)


@router.post("/reconcile/backfill")
async def backfill(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    reconciler: Annotated[LedgerReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    result = await reconciler.backfill(db)
    data = BackfillResponse(scanned=result.scanned, updated=result.updated)
    return success_response(data.model_dump(), request)


@router.post("/reconcile/{transaction_id}")
async def reconcile_transaction(
    transaction_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    reconciler: Annotated[LedgerReconciler, Depends(get_reconciler)],
) -> ApiResponse:
    result = await reconciler.reconcile_by_id(transaction_id, db)
    return success_response(ReconcileResultResponse.from_domain(result).model_dump(), request)
