"""Shared test fixtures."""

import dataclasses
from collections.abc import AsyncGenerator
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.dex_common.database import get_db_session
from src.dex_ledger.domain.models import AssetIds
from src.dex_reconcile.domain.merge import fill_plan, merged_confidence
from src.dex_reconcile.domain.models import TradeRecord
from src.main import app

DEX_CONTRACT = "ST37918Q7NBZ52AMV133VTY5C864KVK0S2HZ3CGA4.plum-aardvark-dex"
TOKEN_ASSET = "ST37918Q7NBZ52AMV133VTY5C864KVK0S2HZ3CGA4.dear-cyan::dear-cyan"
SBTC_ASSET = "ST1F7QA2MDF17S807EPA36TSS8AMEFY4KA9TVGWXT.sbtc-token::sbtc-token"
WALLET = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"


class InMemoryTradeRepository:
    """Dict-backed TradeRecordRepositoryProtocol with the same merge rules as the SQL."""

    def __init__(self) -> None:
        self.rows: dict[str, TradeRecord] = {}
        self._seq = 0

    async def insert_if_absent(self, record: TradeRecord, db: object) -> bool:
        if record.transaction_id in self.rows:
            return False
        self._seq += 1
        self.rows[record.transaction_id] = dataclasses.replace(
            record, inserted_at=record.inserted_at or datetime.fromtimestamp(self._seq)
        )
        return True

    async def fill_missing(self, record: TradeRecord, db: object) -> int:
        existing = self.rows.get(record.transaction_id)
        if existing is None:
            return 0
        fields = fill_plan(existing, record)
        confidence = merged_confidence(existing, record)
        updated = dataclasses.replace(existing, amount_confidence=confidence)
        for name in fields:
            if name != "amount_confidence":
                setattr(updated, name, getattr(record, name))
        self.rows[record.transaction_id] = updated
        return 1

    async def get(self, transaction_id: str, db: object) -> TradeRecord | None:
        row = self.rows.get(transaction_id)
        return dataclasses.replace(row) if row else None

    async def list_incomplete(self, db: object, limit: int) -> list[TradeRecord]:
        tracked = (
            "sats_traded", "tokens_traded", "execution_price",
            "sbtc_balance_after", "token_balance_after", "pool_price_after",
        )
        rows = [
            r for r in self.rows.values()
            if r.is_estimated or any(getattr(r, f) is None for f in tracked)
        ]
        rows.sort(key=lambda r: (
            r.backfill_attempted_at is not None,
            r.backfill_attempted_at or datetime.min,
            r.inserted_at,
        ))
        return [dataclasses.replace(r) for r in rows[:limit]]

    async def mark_backfill_attempted(self, transaction_ids: list[str], db: object) -> int:
        self._seq += 1
        stamp = datetime.fromtimestamp(self._seq)
        for tx_id in transaction_ids:
            self.rows[tx_id] = dataclasses.replace(self.rows[tx_id], backfill_attempted_at=stamp)
        return len(transaction_ids)

    async def list_by_wallet(
        self,
        wallet_address: str,
        since: datetime | None,
        limit: int,
        cursor_id: str | None,
        db: object,
    ) -> list[TradeRecord]:
        rows = [r for r in self.rows.values() if r.wallet_address == wallet_address]
        if since is not None:
            rows = [r for r in rows if r.created_at is not None and r.created_at >= since]
        rows.sort(key=lambda r: (r.inserted_at, r.transaction_id), reverse=True)
        if cursor_id is not None:
            ids = [r.transaction_id for r in rows]
            rows = rows[ids.index(cursor_id) + 1:] if cursor_id in ids else []
        return rows[:limit]

    async def list_since(
        self, since: datetime | None, db: object, wallet_address: str | None = None
    ) -> list[TradeRecord]:
        rows = list(self.rows.values())
        if wallet_address is not None:
            rows = [r for r in rows if r.wallet_address == wallet_address]
        if since is not None:
            rows = [r for r in rows if r.created_at is not None and r.created_at >= since]
        return rows


@pytest.fixture
def assets() -> AssetIds:
    return AssetIds(dex_contract_id=DEX_CONTRACT, sbtc=SBTC_ASSET, token=TOKEN_ASSET)


@pytest.fixture
def trade_repo() -> InMemoryTradeRepository:
    return InMemoryTradeRepository()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def overrides(db: AsyncMock):
    """app.dependency_overrides with a mocked DB session; cleared afterwards."""

    async def _db() -> AsyncGenerator[AsyncMock, None]:
        yield db

    app.dependency_overrides[get_db_session] = _db
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
