# src/dex_reconcile/infrastructure/trades_repository.py
"""trade_records persistence — raw SQL via text().

insert_if_absent: INSERT ... ON CONFLICT (transaction_id) DO NOTHING
fill_missing:     conditional UPDATE; fills NULLs and upgrades estimated
                  amounts, never overwrites authoritative data
list_incomplete:  rows never scanned by backfill first, then least recently scanned
"""
import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_reconcile.domain.models import TradeRecord

_COLUMNS = """
    transaction_id, wallet_address, direction,
    sats_traded, tokens_traded, execution_price, amount_confidence,
    sbtc_balance_after, token_balance_after, pool_price_after,
    slippage_protected, fee, block_height, created_at,
    raw_payload, inserted_at, backfill_attempted_at
"""

_INSERT_SQL = text("""
    INSERT INTO trade_records (
        transaction_id, wallet_address, direction,
        sats_traded, tokens_traded, execution_price, amount_confidence,
        sbtc_balance_after, token_balance_after, pool_price_after,
        slippage_protected, fee, block_height, created_at, raw_payload
    ) VALUES (
        :transaction_id, :wallet_address, :direction,
        :sats_traded, :tokens_traded, :execution_price, :amount_confidence,
        :sbtc_balance_after, :token_balance_after, :pool_price_after,
        :slippage_protected, :fee, :block_height, :created_at,
        CAST(:raw_payload AS JSONB)
    )
    ON CONFLICT (transaction_id) DO NOTHING
    RETURNING transaction_id
""")

# "upgrade" = stored amounts are estimated and the incoming ones are authoritative
_FILL_SQL = text("""
    UPDATE trade_records SET
        sats_traded = CASE
            WHEN sats_traded IS NULL OR (
                amount_confidence = 'estimated'
                AND CAST(:amount_confidence AS TEXT) = 'authoritative'
                AND CAST(:sats_traded AS BIGINT) IS NOT NULL
                AND CAST(:tokens_traded AS BIGINT) IS NOT NULL
            ) THEN COALESCE(CAST(:sats_traded AS BIGINT), sats_traded)
            ELSE sats_traded END,
        tokens_traded = CASE
            WHEN tokens_traded IS NULL OR (
                amount_confidence = 'estimated'
                AND CAST(:amount_confidence AS TEXT) = 'authoritative'
                AND CAST(:sats_traded AS BIGINT) IS NOT NULL
                AND CAST(:tokens_traded AS BIGINT) IS NOT NULL
            ) THEN COALESCE(CAST(:tokens_traded AS BIGINT), tokens_traded)
            ELSE tokens_traded END,
        execution_price = CASE
            WHEN execution_price IS NULL OR (
                amount_confidence = 'estimated'
                AND CAST(:amount_confidence AS TEXT) = 'authoritative'
                AND CAST(:sats_traded AS BIGINT) IS NOT NULL
                AND CAST(:tokens_traded AS BIGINT) IS NOT NULL
            ) THEN COALESCE(CAST(:execution_price AS NUMERIC), execution_price)
            ELSE execution_price END,
        amount_confidence = CASE
            WHEN amount_confidence = 'estimated'
                AND CAST(:amount_confidence AS TEXT) = 'authoritative'
                AND CAST(:sats_traded AS BIGINT) IS NOT NULL
                AND CAST(:tokens_traded AS BIGINT) IS NOT NULL
            THEN 'authoritative'
            WHEN CAST(:amount_confidence AS TEXT) = 'estimated'
                AND (sats_traded IS NULL OR tokens_traded IS NULL)
            THEN 'estimated'
            ELSE amount_confidence END,
        sbtc_balance_after  = COALESCE(sbtc_balance_after, CAST(:sbtc_balance_after AS BIGINT)),
        token_balance_after = COALESCE(token_balance_after, CAST(:token_balance_after AS BIGINT)),
        pool_price_after    = COALESCE(pool_price_after, CAST(:pool_price_after AS NUMERIC)),
        slippage_protected  = COALESCE(slippage_protected, CAST(:slippage_protected AS BOOLEAN)),
        block_height        = COALESCE(block_height, CAST(:block_height AS BIGINT)),
        created_at          = COALESCE(created_at, CAST(:created_at AS TIMESTAMPTZ))
    WHERE transaction_id = :transaction_id
""")

_GET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trade_records
    WHERE transaction_id = :transaction_id
""")

_LIST_INCOMPLETE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trade_records
    WHERE sats_traded IS NULL
       OR tokens_traded IS NULL
       OR execution_price IS NULL
       OR sbtc_balance_after IS NULL
       OR token_balance_after IS NULL
       OR pool_price_after IS NULL
       OR amount_confidence = 'estimated'
    ORDER BY backfill_attempted_at ASC NULLS FIRST, inserted_at ASC
    LIMIT :limit
""")

_MARK_BACKFILL_SQL = text("""
    UPDATE trade_records SET backfill_attempted_at = NOW()
    WHERE transaction_id = ANY(CAST(:transaction_ids AS TEXT[]))
""")

_LIST_BY_WALLET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trade_records
    WHERE wallet_address = :wallet_address
      AND (CAST(:since AS TIMESTAMPTZ) IS NULL OR created_at >= CAST(:since AS TIMESTAMPTZ))
      AND (
          CAST(:cursor_id AS TEXT) IS NULL
          OR (inserted_at, transaction_id) < (
              SELECT inserted_at, transaction_id FROM trade_records
              WHERE transaction_id = CAST(:cursor_id AS TEXT)
          )
      )
    ORDER BY inserted_at DESC, transaction_id DESC
    LIMIT :limit
""")

_LIST_SINCE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM trade_records
    WHERE (CAST(:since AS TIMESTAMPTZ) IS NULL OR created_at >= CAST(:since AS TIMESTAMPTZ))
      AND (
          CAST(:wallet_address AS TEXT) IS NULL
          OR wallet_address = CAST(:wallet_address AS TEXT)
      )
    ORDER BY created_at ASC NULLS LAST, transaction_id ASC
""")


class TradeRecordRepository:
    async def insert_if_absent(self, record: TradeRecord, db: AsyncSession) -> bool:
        """True when a new row was written; False for an existing transaction_id."""
        row = (await db.execute(_INSERT_SQL, _record_params(record))).fetchone()
        return row is not None

    async def fill_missing(self, record: TradeRecord, db: AsyncSession) -> int:
        result = await db.execute(_FILL_SQL, _record_params(record))
        return result.rowcount

    async def get(self, transaction_id: str, db: AsyncSession) -> TradeRecord | None:
        row = (await db.execute(_GET_SQL, {"transaction_id": transaction_id})).fetchone()
        return _row_to_record(row) if row else None

    async def list_incomplete(self, db: AsyncSession, limit: int) -> list[TradeRecord]:
        rows = (await db.execute(_LIST_INCOMPLETE_SQL, {"limit": limit})).fetchall()
        return [_row_to_record(r) for r in rows]

    async def mark_backfill_attempted(self, transaction_ids: list[str], db: AsyncSession) -> int:
        """Stamp scanned rows so the next batch starts with rows not yet tried."""
        if not transaction_ids:
            return 0
        result = await db.execute(_MARK_BACKFILL_SQL, {"transaction_ids": transaction_ids})
        return result.rowcount

    async def list_by_wallet(
        self,
        wallet_address: str,
        since: datetime | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(
                _LIST_BY_WALLET_SQL,
                {
                    "wallet_address": wallet_address,
                    "since": since,
                    "limit": limit,
                    "cursor_id": cursor_id,
                },
            )
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    async def list_since(
        self,
        since: datetime | None,
        db: AsyncSession,
        wallet_address: str | None = None,
    ) -> list[TradeRecord]:
        rows = (
            await db.execute(
                _LIST_SINCE_SQL, {"since": since, "wallet_address": wallet_address}
            )
        ).fetchall()
        return [_row_to_record(r) for r in rows]


def _record_params(record: TradeRecord) -> dict[str, Any]:
    return {
        "transaction_id": record.transaction_id,
        "wallet_address": record.wallet_address,
        "direction": record.direction,
        "sats_traded": record.sats_traded,
        "tokens_traded": record.tokens_traded,
        "execution_price": record.execution_price,
        "amount_confidence": record.amount_confidence,
        "sbtc_balance_after": record.sbtc_balance_after,
        "token_balance_after": record.token_balance_after,
        "pool_price_after": record.pool_price_after,
        "slippage_protected": record.slippage_protected,
        "fee": record.fee,
        "block_height": record.block_height,
        "created_at": record.created_at,
        "raw_payload": json.dumps(record.raw_payload),
    }


def _row_to_record(row: Any) -> TradeRecord:
    payload = row.raw_payload
    if isinstance(payload, str):
        payload = json.loads(payload)
    return TradeRecord(
        transaction_id=row.transaction_id,
        wallet_address=row.wallet_address,
        direction=row.direction,
        sats_traded=row.sats_traded,
        tokens_traded=row.tokens_traded,
        execution_price=Decimal(row.execution_price) if row.execution_price is not None else None,
        amount_confidence=row.amount_confidence,
        sbtc_balance_after=row.sbtc_balance_after,
        token_balance_after=row.token_balance_after,
        pool_price_after=Decimal(row.pool_price_after) if row.pool_price_after is not None else None,
        slippage_protected=row.slippage_protected,
        fee=row.fee,
        block_height=row.block_height,
        created_at=row.created_at,
        raw_payload=payload or {},
        inserted_at=row.inserted_at,
        backfill_attempted_at=row.backfill_attempted_at,
    )
