# src/dex_reconcile/domain/merge.py
"""Which fields a re-derived record may write onto a stored one.

Rules (mirrored by the repository's UPDATE statement):
  - NULL fields are filled from the incoming record
  - amounts flagged "estimated" are replaced by "authoritative" ones
  - authoritative values are never overwritten
"""

from src.dex_common.enums import AmountConfidence
from src.dex_reconcile.domain.models import TradeRecord

AMOUNT_FIELDS = ("sats_traded", "tokens_traded", "execution_price")
FILL_ONLY_FIELDS = (
    "sbtc_balance_after",
    "token_balance_after",
    "pool_price_after",
    "slippage_protected",
    "block_height",
    "created_at",
)


def is_upgrade(existing: TradeRecord, incoming: TradeRecord) -> bool:
    return (
        existing.amount_confidence == AmountConfidence.ESTIMATED.value
        and incoming.amount_confidence == AmountConfidence.AUTHORITATIVE.value
        and incoming.sats_traded is not None
        and incoming.tokens_traded is not None
    )


def fill_plan(existing: TradeRecord, incoming: TradeRecord) -> list[str]:
    """Field names that an update with ``incoming`` would change. Empty → no-op."""
    upgrade = is_upgrade(existing, incoming)
    fields: list[str] = []
    for name in AMOUNT_FIELDS:
        new = getattr(incoming, name)
        old = getattr(existing, name)
        if new is None:
            continue
        if old is None or (upgrade and old != new):
            fields.append(name)
    for name in FILL_ONLY_FIELDS:
        if getattr(existing, name) is None and getattr(incoming, name) is not None:
            fields.append(name)
    if merged_confidence(existing, incoming) != existing.amount_confidence:
        fields.append("amount_confidence")
    return fields


def merged_confidence(existing: TradeRecord, incoming: TradeRecord) -> str:
    if is_upgrade(existing, incoming):
        return AmountConfidence.AUTHORITATIVE.value
    fills_amount = existing.sats_traded is None or existing.tokens_traded is None
    if incoming.is_estimated and fills_amount:
        return AmountConfidence.ESTIMATED.value
    return existing.amount_confidence
