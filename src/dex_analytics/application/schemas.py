"""Pydantic schemas for dex_analytics API responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.dex_analytics.domain.models import AccountPosition, Candle, Holdings, LeaderboardEntry
from src.dex_common.enums import CandleInterval, LeaderboardView


class PositionResponse(BaseModel):
    wallet_address: str
    window_days: int | None
    total_bought: Decimal
    total_sold: Decimal
    total_spent: int
    total_received: int
    realized_pnl: int
    avg_cost: Decimal | None
    net_tokens: Decimal
    trade_count: int
    estimated_trades: int
    first_trade_at: datetime | None

    @classmethod
    def from_domain(cls, p: AccountPosition, window_days: int | None) -> "PositionResponse":
        return cls(
            wallet_address=p.wallet_address,
            window_days=window_days,
            total_bought=p.total_bought,
            total_sold=p.total_sold,
            total_spent=p.total_spent,
            total_received=p.total_received,
            realized_pnl=p.realized_pnl,
            avg_cost=p.avg_cost,
            net_tokens=p.net_tokens,
            trade_count=p.trade_count,
            estimated_trades=p.estimated_trades,
            first_trade_at=p.first_trade_at,
        )


class LeaderboardEntryResponse(BaseModel):
    rank: int
    wallet_address: str
    value: Decimal
    first_trade_at: datetime | None


class LeaderboardResponse(BaseModel):
    view: LeaderboardView
    window_days: int | None
    entries: list[LeaderboardEntryResponse]

    @classmethod
    def from_domain(
        cls, view: LeaderboardView, window_days: int | None, entries: list[LeaderboardEntry]
    ) -> "LeaderboardResponse":
        return cls(
            view=view,
            window_days=window_days,
            entries=[
                LeaderboardEntryResponse(
                    rank=e.rank,
                    wallet_address=e.wallet_address,
                    value=e.value,
                    first_trade_at=e.first_trade_at,
                )
                for e in entries
            ],
        )


class HoldingsResponse(BaseModel):
    wallet_address: str
    derived_tokens: Decimal
    reported_tokens: Decimal | None
    effective_tokens: Decimal
    source: str

    @classmethod
    def from_domain(cls, h: Holdings) -> "HoldingsResponse":
        return cls(
            wallet_address=h.wallet_address,
            derived_tokens=h.derived_tokens,
            reported_tokens=h.reported_tokens,
            effective_tokens=h.effective_tokens,
            source=h.source,
        )


class CandleResponse(BaseModel):
    bucket_start: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    sats_volume: int
    trade_count: int
    estimated_trades: int


class CandlesResponse(BaseModel):
    interval: CandleInterval
    window_days: int
    candles: list[CandleResponse]

    @classmethod
    def from_domain(
        cls, interval: CandleInterval, window_days: int, candles: list[Candle]
    ) -> "CandlesResponse":
        return cls(
            interval=interval,
            window_days=window_days,
            candles=[
                CandleResponse(
                    bucket_start=c.bucket_start,
                    open=c.open,
                    high=c.high,
                    low=c.low,
                    close=c.close,
                    volume=c.volume,
                    sats_volume=c.sats_volume,
                    trade_count=c.trade_count,
                    estimated_trades=c.estimated_trades,
                )
                for c in candles
            ],
        )
