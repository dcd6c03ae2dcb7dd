"""Pydantic schemas for dex_pricing API requests/responses.

Money fields are Decimal and serialise as strings in JSON so no float
rounding leaks into clients.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.dex_common.enums import SwapDirection
from src.dex_pricing.domain.models import PoolState
from src.dex_swap.domain.slippage import SlippageBounds


class PriceResponse(BaseModel):
    price: Decimal
    sbtc_balance: int
    token_balance: Decimal
    locked_tokens: Decimal
    available_tokens: Decimal
    read_at: datetime | None

    @classmethod
    def from_pool(cls, pool: PoolState, price: Decimal) -> "PriceResponse":
        return cls(
            price=price,
            sbtc_balance=pool.sbtc_balance,
            token_balance=pool.token_balance,
            locked_tokens=pool.locked_tokens,
            available_tokens=pool.available_tokens,
            read_at=pool.read_at,
        )


class QuoteRequest(BaseModel):
    direction: SwapDirection
    amount: Decimal = Field(..., description="sats for buy, whole tokens for sell")
    slippage_tolerance: Decimal | None = Field(None, ge=0, le=100)


class SlippageOut(BaseModel):
    tolerance: Decimal
    boundary_price: Decimal
    min_acceptable_output: Decimal

    @classmethod
    def from_bounds(cls, bounds: SlippageBounds) -> "SlippageOut":
        return cls(
            tolerance=bounds.tolerance,
            boundary_price=bounds.boundary_price,
            min_acceptable_output=bounds.min_acceptable_output,
        )


class QuoteResponse(BaseModel):
    direction: SwapDirection
    input_amount: Decimal
    price: Decimal
    fee_rate: Decimal
    estimated_output: Decimal
    slippage: SlippageOut | None = None


class MaxAmountResponse(BaseModel):
    direction: SwapDirection
    balance: Decimal
    percent: Decimal
    amount: Decimal
