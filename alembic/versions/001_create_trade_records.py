"""001: create trade_records table

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trade_records (
            transaction_id      VARCHAR(80)     PRIMARY KEY,
            wallet_address      VARCHAR(128)    NOT NULL,
            direction           VARCHAR(4)      NOT NULL,
            sats_traded         BIGINT          DEFAULT NULL,
            tokens_traded       BIGINT          DEFAULT NULL,
            execution_price     NUMERIC(38, 18) DEFAULT NULL,
            amount_confidence   VARCHAR(16)     NOT NULL,
            sbtc_balance_after  BIGINT          DEFAULT NULL,
            token_balance_after BIGINT          DEFAULT NULL,
            pool_price_after    NUMERIC(38, 18) DEFAULT NULL,
            slippage_protected  BOOLEAN         DEFAULT NULL,
            fee                 BIGINT          NOT NULL DEFAULT 0,
            block_height        BIGINT          DEFAULT NULL,
            created_at          TIMESTAMPTZ     DEFAULT NULL,
            raw_payload         JSONB           NOT NULL DEFAULT '{}'::jsonb,
            inserted_at         TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trade_records_direction  CHECK (direction IN ('buy', 'sell')),
            CONSTRAINT ck_trade_records_confidence CHECK (
                amount_confidence IN ('authoritative', 'estimated')
            ),
            CONSTRAINT ck_trade_records_sats_gte_0   CHECK (sats_traded IS NULL OR sats_traded >= 0),
            CONSTRAINT ck_trade_records_tokens_gte_0 CHECK (tokens_traded IS NULL OR tokens_traded >= 0),
            CONSTRAINT ck_trade_records_fee_gte_0    CHECK (fee >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_trade_records_wallet_time "
        "ON trade_records (wallet_address, inserted_at DESC, transaction_id DESC);"
    )
    op.execute("CREATE INDEX idx_trade_records_created ON trade_records (created_at);")
    op.execute("""
        CREATE INDEX idx_trade_records_incomplete ON trade_records (inserted_at)
        WHERE sats_traded IS NULL OR tokens_traded IS NULL OR execution_price IS NULL
           OR sbtc_balance_after IS NULL OR token_balance_after IS NULL
           OR pool_price_after IS NULL OR amount_confidence = 'estimated';
    """)
    op.execute(
        "COMMENT ON TABLE trade_records IS "
        "'Reconciled DEX trades; append-only apart from fill-if-null backfill';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trade_records CASCADE;")
