"""Domain models for dex_pricing — pure dataclasses, no I/O."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

VIRTUAL_LIQUIDITY_SATS = 1_500_000  # 0.015 sBTC of virtual depth on the quote side


@dataclass(frozen=True)
class PoolState:
    """Snapshot of the DEX pool.

    sbtc_balance is in sats; token_balance / locked_tokens are whole tokens
    (the reader converts from base units).
    """

    sbtc_balance: int
    token_balance: Decimal
    locked_tokens: Decimal = Decimal(0)
    virtual_liquidity: int = VIRTUAL_LIQUIDITY_SATS
    read_at: datetime | None = None

    @property
    def available_tokens(self) -> Decimal:
        return self.token_balance - self.locked_tokens
