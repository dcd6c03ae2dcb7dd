# tests/unit/test_trades_repository.py
"""Unit tests for TradeRecordRepository."""
import json
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.dex_reconcile.domain.models import TradeRecord
from src.dex_reconcile.infrastructure.trades_repository import TradeRecordRepository


def _make_record_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.transaction_id = kwargs.get("transaction_id", "0xabc")
    row.wallet_address = kwargs.get("wallet_address", "ST2WALLET")
    row.direction = kwargs.get("direction", "buy")
    row.sats_traded = kwargs.get("sats_traded", 1000)
    row.tokens_traded = kwargs.get("tokens_traded", 49_000_000_000)
    row.execution_price = kwargs.get("execution_price", "2.04081632653061224489795918")
    row.amount_confidence = kwargs.get("amount_confidence", "authoritative")
    row.sbtc_balance_after = kwargs.get("sbtc_balance_after", 501_000)
    row.token_balance_after = kwargs.get("token_balance_after", 99_951_000_000_000)
    row.pool_price_after = kwargs.get("pool_price_after")
    row.slippage_protected = kwargs.get("slippage_protected", True)
    row.fee = kwargs.get("fee", 3000)
    row.block_height = kwargs.get("block_height", 1200)
    row.created_at = kwargs.get("created_at", datetime(2026, 10, 1, tzinfo=UTC))
    row.raw_payload = kwargs.get("raw_payload", {"tx_id": "0xabc"})
    row.inserted_at = kwargs.get("inserted_at", datetime.now(UTC))
    row.backfill_attempted_at = kwargs.get("backfill_attempted_at")
    return row


def _record() -> TradeRecord:
    return TradeRecord(
        transaction_id="0xabc",
        wallet_address="ST2WALLET",
        direction="buy",
        sats_traded=1000,
        tokens_traded=None,
        execution_price=None,
        amount_confidence="authoritative",
        raw_payload={"tx_id": "0xabc"},
    )


def _db(fetchone: Any = None, fetchall: list[Any] | None = None, rowcount: int = 0) -> AsyncMock:
    db = AsyncMock()
    result_mock = MagicMock()
    result_mock.fetchone.return_value = fetchone
    result_mock.fetchall.return_value = fetchall or []
    result_mock.rowcount = rowcount
    db.execute.return_value = result_mock
    return db


@pytest.mark.asyncio
async def test_insert_if_absent_new_row() -> None:
    db = _db(fetchone=("0xabc",))
    assert await TradeRecordRepository().insert_if_absent(_record(), db) is True
    params = db.execute.call_args.args[1]
    assert params["tokens_traded"] is None
    assert json.loads(params["raw_payload"]) == {"tx_id": "0xabc"}


@pytest.mark.asyncio
async def test_insert_if_absent_conflict() -> None:
    db = _db(fetchone=None)
    assert await TradeRecordRepository().insert_if_absent(_record(), db) is False


@pytest.mark.asyncio
async def test_fill_missing_returns_rowcount() -> None:
    db = _db(rowcount=1)
    assert await TradeRecordRepository().fill_missing(_record(), db) == 1
    sql = str(db.execute.call_args.args[0])
    assert "COALESCE(sbtc_balance_after" in sql


@pytest.mark.asyncio
async def test_get_maps_row() -> None:
    db = _db(fetchone=_make_record_row(pool_price_after="2.002"))
    record = await TradeRecordRepository().get("0xabc", db)
    assert record is not None
    assert record.tokens_traded == 49_000_000_000
    assert isinstance(record.execution_price, Decimal)
    assert record.pool_price_after == Decimal("2.002")
    assert record.raw_payload == {"tx_id": "0xabc"}


@pytest.mark.asyncio
async def test_get_missing() -> None:
    assert await TradeRecordRepository().get("0xnone", _db()) is None


@pytest.mark.asyncio
async def test_row_with_json_text_payload() -> None:
    db = _db(fetchone=_make_record_row(raw_payload='{"tx_id": "0xabc"}', execution_price=None))
    record = await TradeRecordRepository().get("0xabc", db)
    assert record is not None
    assert record.raw_payload == {"tx_id": "0xabc"}
    assert record.execution_price is None


@pytest.mark.asyncio
async def test_list_by_wallet_returns_rows() -> None:
    db = _db(fetchall=[_make_record_row(), _make_record_row(transaction_id="0xdef")])
    records = await TradeRecordRepository().list_by_wallet("ST2WALLET", None, 21, "0x999", db)
    assert [r.transaction_id for r in records] == ["0xabc", "0xdef"]
    params = db.execute.call_args.args[1]
    assert params == {
        "wallet_address": "ST2WALLET", "since": None, "limit": 21, "cursor_id": "0x999",
    }


@pytest.mark.asyncio
async def test_list_incomplete_passes_limit() -> None:
    db = _db(fetchall=[_make_record_row(tokens_traded=None)])
    records = await TradeRecordRepository().list_incomplete(db, 500)
    assert records[0].tokens_traded is None
    assert db.execute.call_args.args[1] == {"limit": 500}
    sql = str(db.execute.call_args.args[0])
    assert "backfill_attempted_at ASC NULLS FIRST, inserted_at ASC" in sql


@pytest.mark.asyncio
async def test_mark_backfill_attempted() -> None:
    db = _db(rowcount=2)
    assert await TradeRecordRepository().mark_backfill_attempted(["0xabc", "0xdef"], db) == 2
    assert db.execute.call_args.args[1] == {"transaction_ids": ["0xabc", "0xdef"]}
    assert "backfill_attempted_at = NOW()" in str(db.execute.call_args.args[0])


@pytest.mark.asyncio
async def test_mark_backfill_attempted_nothing_scanned() -> None:
    db = _db()
    assert await TradeRecordRepository().mark_backfill_attempted([], db) == 0
    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_since_filters_optional_wallet() -> None:
    db = _db(fetchall=[])
    assert await TradeRecordRepository().list_since(None, db) == []
    assert db.execute.call_args.args[1] == {"since": None, "wallet_address": None}
