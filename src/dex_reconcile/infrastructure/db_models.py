"""SQLAlchemy ORM model for the trade_records table.

trades_repository.py uses raw text() SQL; this model backs `alembic check`
and the column-drift tests. The Alembic migrations under alembic/versions/ are
the authoritative DDL source.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import BigInteger, Boolean, DateTime, Numeric, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.dex_common.database import Base


class TradeRecordORM(Base):
    __tablename__ = "trade_records"

    transaction_id: Mapped[str] = mapped_column(String(80), primary_key=True)
    wallet_address: Mapped[str] = mapped_column(String(128), nullable=False)
    direction: Mapped[str] = mapped_column(String(4), nullable=False)
    sats_traded: Mapped[int | None] = mapped_column(BigInteger)
    tokens_traded: Mapped[int | None] = mapped_column(BigInteger)
    execution_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 18))
    amount_confidence: Mapped[str] = mapped_column(String(16), nullable=False)
    sbtc_balance_after: Mapped[int | None] = mapped_column(BigInteger)
    token_balance_after: Mapped[int | None] = mapped_column(BigInteger)
    pool_price_after: Mapped[Decimal | None] = mapped_column(Numeric(38, 18))
    slippage_protected: Mapped[bool | None] = mapped_column(Boolean)
    fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    block_height: Mapped[int | None] = mapped_column(BigInteger)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    raw_payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    backfill_attempted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # NOTE: no updated_at; rows are append-only apart from fill-if-null backfill
