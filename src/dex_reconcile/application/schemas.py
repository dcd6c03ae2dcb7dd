"""Pydantic schemas for dex_reconcile API responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.dex_common.enums import TxStatus
from src.dex_common.errors import ReconciliationPartial
from src.dex_common.units import base_to_tokens
from src.dex_reconcile.domain.models import ReconcileResult, SyncResult, TradeRecord


class TradeRecordResponse(BaseModel):
    transaction_id: str
    wallet_address: str
    direction: str
    sats_traded: int | None
    tokens_traded: int | None
    tokens_traded_display: Decimal | None
    execution_price: Decimal | None
    amount_confidence: str
    sbtc_balance_after: int | None
    token_balance_after: int | None
    pool_price_after: Decimal | None
    slippage_protected: bool | None
    fee: int
    block_height: int | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, r: TradeRecord) -> "TradeRecordResponse":
        return cls(
            transaction_id=r.transaction_id,
            wallet_address=r.wallet_address,
            direction=r.direction,
            sats_traded=r.sats_traded,
            tokens_traded=r.tokens_traded,
            tokens_traded_display=(
                base_to_tokens(r.tokens_traded) if r.tokens_traded is not None else None
            ),
            execution_price=r.execution_price,
            amount_confidence=r.amount_confidence,
            sbtc_balance_after=r.sbtc_balance_after,
            token_balance_after=r.token_balance_after,
            pool_price_after=r.pool_price_after,
            slippage_protected=r.slippage_protected,
            fee=r.fee,
            block_height=r.block_height,
            created_at=r.created_at,
        )


class TradeListResponse(BaseModel):
    items: list[TradeRecordResponse]
    has_more: bool
    next_cursor: str | None


class ReconcileResultResponse(BaseModel):
    transaction_id: str
    outcome: str
    filled_fields: list[str]
    missing_fields: list[str]
    warning: str | None

    @classmethod
    def from_domain(cls, r: ReconcileResult) -> "ReconcileResultResponse":
        warning = (
            ReconciliationPartial(r.transaction_id, r.missing_fields).message
            if r.partial
            else None
        )
        return cls(
            transaction_id=r.transaction_id,
            outcome=r.outcome,
            filled_fields=r.filled_fields,
            missing_fields=r.missing_fields,
            warning=warning,
        )


class BackfillResponse(BaseModel):
    scanned: int
    updated: int


class SyncResponse(BaseModel):
    fetched: int
    inserted: int
    merged: int
    unchanged: int
    skipped: int
    backfill: BackfillResponse

    @classmethod
    def from_domain(cls, r: SyncResult) -> "SyncResponse":
        return cls(
            fetched=r.fetched,
            inserted=r.inserted,
            merged=r.merged,
            unchanged=r.unchanged,
            skipped=r.skipped,
            backfill=BackfillResponse(scanned=r.backfill.scanned, updated=r.backfill.updated),
        )


class TransactionStatusResponse(BaseModel):
    transaction_id: str
    status: TxStatus
    ledger_status: str | None
    function_name: str | None
    block_height: int | None
    recorded: bool
