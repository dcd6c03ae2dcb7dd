# src/dex_reconcile/domain/repository.py
"""Trade store Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_reconcile.domain.models import TradeRecord


class TradeRecordRepositoryProtocol(Protocol):
    async def insert_if_absent(self, record: TradeRecord, db: AsyncSession) -> bool: ...

    async def fill_missing(self, record: TradeRecord, db: AsyncSession) -> int: ...

    async def get(self, transaction_id: str, db: AsyncSession) -> TradeRecord | None: ...

    async def list_incomplete(self, db: AsyncSession, limit: int) -> list[TradeRecord]: ...

    async def mark_backfill_attempted(
        self, transaction_ids: list[str], db: AsyncSession
    ) -> int: ...

    async def list_by_wallet(
        self,
        wallet_address: str,
        since: datetime | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[TradeRecord]: ...

    async def list_since(
        self,
        since: datetime | None,
        db: AsyncSession,
        wallet_address: str | None = None,
    ) -> list[TradeRecord]: ...
