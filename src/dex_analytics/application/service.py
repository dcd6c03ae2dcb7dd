"""AnalyticsService — reads only from the trade store (plus the chain for reported balances)."""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_analytics.domain.aggregation import (
    candlesticks,
    leaderboard,
    position_for,
    positions,
)
from src.dex_analytics.domain.models import AccountPosition, Candle, Holdings, LeaderboardEntry
from src.dex_common.datetime_utils import window_start
from src.dex_common.enums import CandleInterval, LeaderboardView
from src.dex_common.errors import AppError
from src.dex_common.units import base_to_tokens
from src.dex_ledger.domain.repository import LedgerClientProtocol
from src.dex_reconcile.domain.repository import TradeRecordRepositoryProtocol
from src.dex_reconcile.infrastructure.trades_repository import TradeRecordRepository

logger = logging.getLogger(__name__)


class AnalyticsService:
    def __init__(
        self,
        token_asset_identifier: str,
        ledger: LedgerClientProtocol | None = None,
        repo: TradeRecordRepositoryProtocol | None = None,
    ) -> None:
        self._token_asset = token_asset_identifier
        self._ledger = ledger
        self._repo: TradeRecordRepositoryProtocol = repo or TradeRecordRepository()

    async def pnl(
        self, wallet_address: str, window_days: int | None, db: AsyncSession
    ) -> AccountPosition:
        records = await self._repo.list_since(window_start(window_days), db, wallet_address)
        return position_for(wallet_address, records)

    async def leaderboard(
        self, view: LeaderboardView, window_days: int | None, db: AsyncSession
    ) -> list[LeaderboardEntry]:
        records = await self._repo.list_since(window_start(window_days), db)
        return leaderboard(view, positions(records))

    async def candles(
        self, interval: CandleInterval, window_days: int | None, db: AsyncSession
    ) -> list[Candle]:
        records = await self._repo.list_since(window_start(window_days), db)
        return candlesticks(records, interval)

    async def derived_balance(self, wallet_address: str, db: AsyncSession) -> Decimal:
        """Net whole tokens from the full trade history."""
        records = await self._repo.list_since(None, db, wallet_address)
        return position_for(wallet_address, records).net_tokens

    async def reported_balance(self, wallet_address: str) -> Decimal | None:
        """On-chain token balance in whole tokens; None when the ledger can't be reached."""
        if self._ledger is None:
            return None
        try:
            base_units = await self._ledger.get_fungible_balance(wallet_address, self._token_asset)
        except AppError as exc:
            logger.warning("Reported balance unavailable for %s: %s", wallet_address, exc.message)
            return None
        return base_to_tokens(base_units)

    async def holdings(self, wallet_address: str, db: AsyncSession) -> Holdings:
        derived = await self.derived_balance(wallet_address, db)
        reported = await self.reported_balance(wallet_address)
        if reported is not None and reported != derived:
            logger.info(
                "Holdings mismatch for %s: reported=%s derived=%s", wallet_address, reported, derived
            )
        return Holdings(wallet_address, derived_tokens=derived, reported_tokens=reported)
