"""PricingApplicationService — composes pool reads with the pure pricing functions.

Quotes always price against a fresh pool read; the display price may come
from the short-TTL cache.
"""

import logging
from decimal import Decimal

from src.dex_common.enums import SwapDirection
from src.dex_pricing.application.schemas import (
    MaxAmountResponse,
    PriceResponse,
    QuoteRequest,
    QuoteResponse,
    SlippageOut,
)
from src.dex_pricing.domain.pricing import (
    FEE_RATE,
    current_price,
    estimated_output,
    max_tradeable_amount,
)
from src.dex_pricing.infrastructure.pool_reader import PoolReader
from src.dex_swap.domain.slippage import compute_bounds

logger = logging.getLogger(__name__)


class PricingApplicationService:
    def __init__(self, reader: PoolReader) -> None:
        self._reader = reader

    async def get_price(self) -> PriceResponse:
        pool = await self._reader.read_for_display()
        return PriceResponse.from_pool(pool, current_price(pool))

    async def quote(self, req: QuoteRequest) -> QuoteResponse:
        pool = await self._reader.read_fresh()
        price = current_price(pool)
        output = estimated_output(req.direction, req.amount, price)
        slippage = None
        if req.slippage_tolerance is not None:
            bounds = compute_bounds(req.direction, output, price, req.slippage_tolerance)
            slippage = SlippageOut.from_bounds(bounds)
        logger.info(
            "Quote %s amount=%s price=%s output=%s", req.direction.value, req.amount, price, output
        )
        return QuoteResponse(
            direction=req.direction,
            input_amount=req.amount,
            price=price,
            fee_rate=FEE_RATE,
            estimated_output=output,
            slippage=slippage,
        )

    @staticmethod
    def max_amount(direction: SwapDirection, balance: Decimal, percent: Decimal) -> MaxAmountResponse:
        return MaxAmountResponse(
            direction=direction,
            balance=balance,
            percent=percent,
            amount=max_tradeable_amount(direction, balance, percent),
        )
