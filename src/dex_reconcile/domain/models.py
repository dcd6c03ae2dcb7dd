"""Domain models for dex_reconcile — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass
class TradeRecord:
    transaction_id: str
    wallet_address: str
    direction: str  # buy / sell
    sats_traded: int | None  # sats, always >= 0
    tokens_traded: int | None  # token base units, always >= 0
    execution_price: Decimal | None  # sats per whole token
    amount_confidence: str  # authoritative / estimated
    sbtc_balance_after: int | None = None
    token_balance_after: int | None = None
    pool_price_after: Decimal | None = None
    slippage_protected: bool | None = None
    fee: int = 0
    block_height: int | None = None
    created_at: datetime | None = None  # block time
    raw_payload: dict[str, Any] = field(default_factory=dict)
    inserted_at: datetime | None = None
    backfill_attempted_at: datetime | None = None  # last backfill scan
    # extraction bookkeeping, never persisted
    missing_fields: list[str] = field(default_factory=list, compare=False)

    @property
    def is_estimated(self) -> bool:
        return self.amount_confidence == "estimated"


@dataclass(frozen=True)
class ReconcileResult:
    transaction_id: str
    outcome: str  # inserted / merged / unchanged / skipped
    filled_fields: list[str] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.missing_fields)


@dataclass(frozen=True)
class BackfillResult:
    scanned: int
    updated: int


@dataclass(frozen=True)
class SyncResult:
    fetched: int
    inserted: int
    merged: int
    unchanged: int
    skipped: int
    backfill: BackfillResult
