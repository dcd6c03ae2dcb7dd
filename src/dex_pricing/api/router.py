"""dex_pricing REST endpoints.

GET  /price               — display price + pool balances (cached ≤ TTL)
POST /quotes              — fresh-read quote with optional slippage bounds
GET  /quotes/max-amount   — quick-percentage amount with safety margin
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.dex_common.enums import SwapDirection
from src.dex_common.redis_client import get_redis
from src.dex_common.response import ApiResponse, success_response
from src.dex_ledger.infrastructure.hiro_client import get_ledger_client
from src.dex_pricing.application.schemas import QuoteRequest
from src.dex_pricing.application.service import PricingApplicationService
from src.dex_pricing.infrastructure.pool_reader import PoolReader

router = APIRouter(tags=["pricing"])


async def get_pricing_service() -> PricingApplicationService:
    reader = PoolReader(get_ledger_client(), await get_redis())
    return PricingApplicationService(reader)


@router.get("/price")
async def get_price(
    request: Request,
    service: Annotated[PricingApplicationService, Depends(get_pricing_service)],
) -> ApiResponse:
    result = await service.get_price()
    return success_response(result.model_dump(mode="json"), request)


@router.post("/quotes")
async def create_quote(
    body: QuoteRequest,
    request: Request,
    service: Annotated[PricingApplicationService, Depends(get_pricing_service)],
) -> ApiResponse:
    result = await service.quote(body)
    return success_response(result.model_dump(mode="json"), request)


@router.get("/quotes/max-amount")
async def max_amount(
    request: Request,
    direction: SwapDirection = Query(...),
    balance: Decimal = Query(..., ge=0),
    percent: Decimal = Query(..., gt=0, le=100),
) -> ApiResponse:
    result = PricingApplicationService.max_amount(direction, balance, percent)
    return success_response(result.model_dump(mode="json"), request)
