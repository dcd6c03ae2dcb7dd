"""Domain models for dex_analytics — derived views, never persisted."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class AccountPosition:
    wallet_address: str
    total_bought: Decimal  # whole tokens
    total_sold: Decimal
    total_spent: int  # sats
    total_received: int
    first_trade_at: datetime | None
    trade_count: int
    estimated_trades: int = 0

    @property
    def realized_pnl(self) -> int:
        return self.total_received - self.total_spent

    @property
    def net_tokens(self) -> Decimal:
        return self.total_bought - self.total_sold

    @property
    def avg_cost(self) -> Decimal | None:
        """Sats per whole token bought; None when nothing was bought."""
        if self.total_bought <= 0:
            return None
        return Decimal(self.total_spent) / self.total_bought


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    wallet_address: str
    value: Decimal
    first_trade_at: datetime | None


@dataclass(frozen=True)
class Holdings:
    wallet_address: str
    derived_tokens: Decimal  # from trade history
    reported_tokens: Decimal | None  # from the chain; None when unavailable

    @property
    def effective_tokens(self) -> Decimal:
        if self.reported_tokens is not None:
            return self.reported_tokens
        return self.derived_tokens

    @property
    def source(self) -> str:
        return "reported" if self.reported_tokens is not None else "derived"


@dataclass(frozen=True)
class Candle:
    """OHLC summary of the execution prices in one time bucket."""

    bucket_start: datetime
    open: Decimal  # sats per whole token
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal  # whole tokens
    sats_volume: int
    trade_count: int
    estimated_trades: int = 0
