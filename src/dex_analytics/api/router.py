"""dex_analytics REST endpoints.

GET /analytics/pnl          — realized P&L for one wallet over a window
GET /analytics/leaderboard  — top 10 performers or holders
GET /analytics/holdings     — derived vs reported token balance
GET /analytics/candles      — OHLC execution-price candles over a trailing window
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.dex_analytics.application.schemas import (
    CandlesResponse,
    HoldingsResponse,
    LeaderboardResponse,
    PositionResponse,
)
from src.dex_analytics.application.service import AnalyticsService
from src.dex_common.database import get_db_session
from src.dex_common.enums import CandleInterval, LeaderboardView
from src.dex_common.response import ApiResponse, success_response
from src.dex_ledger.infrastructure.hiro_client import get_ledger_client

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService(settings.token_asset_identifier, get_ledger_client())


@router.get("/pnl")
async def get_pnl(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AnalyticsService, Depends(get_analytics_service)],
    wallet: str = Query(..., min_length=1),
    window_days: int | None = Query(None, ge=1, le=3650),
) -> ApiResponse:
    position = await service.pnl(wallet, window_days, db)
    data = PositionResponse.from_domain(position, window_days)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/leaderboard")
async def get_leaderboard(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AnalyticsService, Depends(get_analytics_service)],
    view: LeaderboardView = Query(LeaderboardView.PERFORMERS),
    window_days: int | None = Query(None, ge=1, le=3650),
) -> ApiResponse:
    entries = await service.leaderboard(view, window_days, db)
    data = LeaderboardResponse.from_domain(view, window_days, entries)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/holdings")
async def get_holdings(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AnalyticsService, Depends(get_analytics_service)],
    wallet: str = Query(..., min_length=1),
) -> ApiResponse:
    holdings = await service.holdings(wallet, db)
    return success_response(HoldingsResponse.from_domain(holdings).model_dump(mode="json"), request)


@router.get("/candles")
async def get_candles(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AnalyticsService, Depends(get_analytics_service)],
    interval: CandleInterval = Query(CandleInterval.FIVE_MINUTES),
    window_days: int = Query(1, ge=1, le=365),
) -> ApiResponse:
    candles = await service.candles(interval, window_days, db)
    data = CandlesResponse.from_domain(interval, window_days, candles)
    return success_response(data.model_dump(mode="json"), request)
