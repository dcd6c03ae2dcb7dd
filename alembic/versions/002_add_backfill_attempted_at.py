"""002: track backfill scans on trade_records

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        "ALTER TABLE trade_records "
        "ADD COLUMN backfill_attempted_at TIMESTAMPTZ DEFAULT NULL;"
    )
    op.execute("DROP INDEX IF EXISTS idx_trade_records_incomplete;")
    op.execute("""
        CREATE INDEX idx_trade_records_incomplete
        ON trade_records (backfill_attempted_at ASC NULLS FIRST, inserted_at ASC)
        WHERE sats_traded IS NULL OR tokens_traded IS NULL OR execution_price IS NULL
           OR sbtc_balance_after IS NULL OR token_balance_after IS NULL
           OR pool_price_after IS NULL OR amount_confidence = 'estimated';
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_trade_records_incomplete;")
    op.execute("""
        CREATE INDEX idx_trade_records_incomplete ON trade_records (inserted_at)
        WHERE sats_traded IS NULL OR tokens_traded IS NULL OR execution_price IS NULL
           OR sbtc_balance_after IS NULL OR token_balance_after IS NULL
           OR pool_price_after IS NULL OR amount_confidence = 'estimated';
    """)
    op.execute("ALTER TABLE trade_records DROP COLUMN IF EXISTS backfill_attempted_at;")
