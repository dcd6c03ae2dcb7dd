# src/dex_reconcile/application/reconciler.py
"""LedgerReconciler — confirmed ledger transactions → trade_records.

reconcile():     one transaction; insert-or-no-op, then fill-if-null merge
backfill():      rescan incomplete rows, re-derive from raw_payload; least recently
                 scanned rows first so unfixable rows cannot starve the rest
sync_recent():   pull the DEX contract's recent history, reconcile, backfill
transaction_status(): direct ledger lookup, store as fallback

Only store I/O failures propagate (StoreUnavailableError); per-field
extraction gaps are logged and reported as ReconciliationPartial.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_common.enums import TxStatus
from src.dex_common.errors import (
    AppError,
    InternalError,
    ReconciliationPartial,
    StoreUnavailableError,
    TradeRecordNotFoundError,
)
from src.dex_ledger.domain.models import AssetIds, LedgerTransaction
from src.dex_ledger.domain.repository import LedgerClientProtocol
from src.dex_ledger.infrastructure.tx_parser import parse_transaction
from src.dex_reconcile.domain.extraction import extract_trade
from src.dex_reconcile.domain.merge import fill_plan
from src.dex_reconcile.domain.models import (
    BackfillResult,
    ReconcileResult,
    SyncResult,
    TradeRecord,
)
from src.dex_reconcile.domain.repository import TradeRecordRepositoryProtocol
from src.dex_reconcile.domain.status import resolve_status
from src.dex_reconcile.infrastructure.trades_repository import TradeRecordRepository

logger = logging.getLogger(__name__)

BACKFILL_BATCH_SIZE = 500


class LedgerReconciler:
    def __init__(
        self,
        assets: AssetIds,
        ledger: LedgerClientProtocol | None = None,
        repo: TradeRecordRepositoryProtocol | None = None,
    ) -> None:
        self._assets = assets
        self._ledger = ledger
        self._repo: TradeRecordRepositoryProtocol = repo or TradeRecordRepository()

    async def reconcile(self, tx: LedgerTransaction, db: AsyncSession) -> ReconcileResult:
        record = extract_trade(tx, self._assets)
        if record is None:
            logger.debug("Skipping %s (%s %s)", tx.tx_id, tx.function_name, tx.tx_status)
            return ReconcileResult(tx.tx_id, "skipped")
        try:
            result = await self._store(record, db)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Trade store write failed for %s: %s", tx.tx_id, exc)
            raise StoreUnavailableError(f"Trade store write failed: {exc}") from exc
        if result.partial:
            warning = ReconciliationPartial(tx.tx_id, result.missing_fields)
            logger.warning(warning.message)
        return result

    async def backfill(self, db: AsyncSession, limit: int = BACKFILL_BATCH_SIZE) -> BackfillResult:
        try:
            rows = await self._repo.list_incomplete(db, limit)
            updated = 0
            for row in rows:
                if not row.raw_payload:
                    continue
                incoming = self._rederive(row)
                if incoming is None or not fill_plan(row, incoming):
                    continue
                await self._repo.fill_missing(incoming, db)
                updated += 1
            await self._repo.mark_backfill_attempted([r.transaction_id for r in rows], db)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Backfill aborted: %s", exc)
            raise StoreUnavailableError(f"Trade store backfill failed: {exc}") from exc
        logger.info("Backfill scanned=%d updated=%d", len(rows), updated)
        return BackfillResult(scanned=len(rows), updated=updated)

    async def sync_recent(self, db: AsyncSession, limit: int = 50) -> SyncResult:
        ledger = self._require_ledger()
        txs = await ledger.list_contract_transactions(self._assets.dex_contract_id, limit)
        counts = {"inserted": 0, "merged": 0, "unchanged": 0, "skipped": 0}
        for tx in txs:
            result = await self.reconcile(tx, db)
            counts[result.outcome] += 1
        backfill = await self.backfill(db)
        logger.info("Contract sync fetched=%d %s", len(txs), counts)
        return SyncResult(fetched=len(txs), backfill=backfill, **counts)

    async def reconcile_by_id(self, transaction_id: str, db: AsyncSession) -> ReconcileResult:
        tx = await self._require_ledger().get_transaction(transaction_id)
        return await self.reconcile(tx, db)

    async def list_records(
        self,
        wallet_address: str,
        since: datetime | None,
        limit: int,
        cursor_id: str | None,
        db: AsyncSession,
    ) -> list[TradeRecord]:
        return await self._repo.list_by_wallet(wallet_address, since, limit, cursor_id, db)

    async def get_record(self, transaction_id: str, db: AsyncSession) -> TradeRecord:
        record = await self._repo.get(transaction_id, db)
        if record is None:
            raise TradeRecordNotFoundError(transaction_id)
        return record

    async def transaction_status(
        self, transaction_id: str, db: AsyncSession
    ) -> tuple[TxStatus, LedgerTransaction | None, bool]:
        """(resolved status, direct lookup result, whether a trade record exists)."""
        stored = await self._repo.get(transaction_id, db)
        feed = "success" if stored is not None else None
        direct: LedgerTransaction | None = None
        try:
            direct = await self._require_ledger().get_transaction(transaction_id)
        except AppError as exc:
            if feed is None:
                raise
            logger.warning("Direct lookup failed for %s: %s", transaction_id, exc.message)
        status = resolve_status(direct.tx_status if direct else None, feed)
        return status, direct, stored is not None

    async def _store(self, record: TradeRecord, db: AsyncSession) -> ReconcileResult:
        if await self._repo.insert_if_absent(record, db):
            logger.info(
                "Recorded %s %s sats=%s tokens=%s (%s)",
                record.direction, record.transaction_id,
                record.sats_traded, record.tokens_traded, record.amount_confidence,
            )
            return ReconcileResult(
                record.transaction_id, "inserted", missing_fields=record.missing_fields
            )
        existing = await self._repo.get(record.transaction_id, db)
        fields = fill_plan(existing, record) if existing else []
        if not fields:
            return ReconcileResult(record.transaction_id, "unchanged")
        await self._repo.fill_missing(record, db)
        logger.info("Merged %s into %s", ", ".join(fields), record.transaction_id)
        still_missing = [f for f in record.missing_fields if getattr(existing, f) is None]
        return ReconcileResult(
            record.transaction_id, "merged", filled_fields=fields, missing_fields=still_missing
        )

    def _rederive(self, row: TradeRecord) -> TradeRecord | None:
        try:
            tx = parse_transaction(row.raw_payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Unparseable raw payload for %s: %s", row.transaction_id, exc)
            return None
        return extract_trade(tx, self._assets)

    def _require_ledger(self) -> LedgerClientProtocol:
        if self._ledger is None:
            raise InternalError("Ledger client not configured")
        return self._ledger
