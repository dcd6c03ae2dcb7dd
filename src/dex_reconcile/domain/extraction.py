# src/dex_reconcile/domain/extraction.py
"""Derive a TradeRecord from a confirmed ledger transaction.

Amount sources, in order of preference:
  input  — declared uint argument (the contract debits exactly this)
  output — 1. tx result "(ok uN)"
           2. ft transfer of the output asset to the sender
           3. estimate from the input and the post-trade pool price
              (amount_confidence = "estimated")
           4. NULL

execution_price = sats_traded / (tokens_traded / 1e8), recomputed here and
never taken from an upstream figure. Prices are rounded to the store's
18-decimal scale so a recomputation matches the stored value exactly.
"""

import logging
import re
from decimal import Decimal

from src.dex_common.enums import AmountConfidence, GuardMode, SwapDirection
from src.dex_common.errors import InsufficientLiquidityError
from src.dex_common.units import (
    UNIT_SCALE,
    base_to_tokens,
    parse_uint_repr,
    price_ratio,
    quantize_price,
    tokens_to_base,
)
from src.dex_ledger.domain.models import AssetIds, LedgerTransaction
from src.dex_pricing.domain.models import PoolState
from src.dex_pricing.domain.pricing import current_price, estimated_output
from src.dex_reconcile.domain.models import TradeRecord

logger = logging.getLogger(__name__)

_OK_UINT = re.compile(r"\(ok u(\d+)\)")
_SBTC_BALANCE = re.compile(r"\((?:current-stx-balance|sbtc-balance) u(\d+)\)")
_TOKEN_BALANCE = re.compile(r"\(token-balance u(\d+)\)")

TRACKED_FIELDS = (
    "sats_traded",
    "tokens_traded",
    "execution_price",
    "sbtc_balance_after",
    "token_balance_after",
    "pool_price_after",
)


def trade_direction(tx: LedgerTransaction, dex_contract_id: str) -> SwapDirection | None:
    """buy/sell calls on the DEX contract; None for anything else."""
    if tx.tx_type and tx.tx_type != "contract_call":
        return None
    if tx.contract_id and tx.contract_id != dex_contract_id:
        return None
    if tx.function_name in (SwapDirection.BUY.value, SwapDirection.SELL.value):
        return SwapDirection(tx.function_name)
    return None


def extract_trade(tx: LedgerTransaction, assets: AssetIds) -> TradeRecord | None:
    """None when the tx is not a successful buy/sell on the DEX contract."""
    direction = trade_direction(tx, assets.dex_contract_id)
    if direction is None or not tx.is_success:
        return None

    declared_input = parse_uint_repr(tx.function_args[0]) if tx.function_args else None
    sbtc_after, token_after = pool_balances_after(tx)
    pool_price = pool_price_after(sbtc_after, token_after)

    output = _output_from_result(tx)
    if output is None:
        output = _output_from_transfers(tx, direction, assets)
    confidence = AmountConfidence.AUTHORITATIVE
    if output is None and declared_input is not None and pool_price is not None:
        output = estimate_output(direction, declared_input, pool_price)
        if output is not None:
            confidence = AmountConfidence.ESTIMATED

    if direction is SwapDirection.BUY:
        sats, tokens = declared_input, output
    else:
        sats, tokens = output, declared_input

    record = TradeRecord(
        transaction_id=tx.tx_id,
        wallet_address=tx.sender_address,
        direction=direction.value,
        sats_traded=abs(sats) if sats is not None else None,
        tokens_traded=abs(tokens) if tokens is not None else None,
        execution_price=execution_price(sats, tokens),
        amount_confidence=confidence.value,
        sbtc_balance_after=sbtc_after,
        token_balance_after=token_after,
        pool_price_after=pool_price,
        slippage_protected=slippage_protected(tx.post_condition_mode),
        fee=tx.fee,
        block_height=tx.block_height,
        created_at=tx.block_time,
        raw_payload=tx.raw,
    )
    record.missing_fields = [f for f in TRACKED_FIELDS if getattr(record, f) is None]
    if record.missing_fields:
        logger.warning(
            "Partial extraction for %s: missing %s", tx.tx_id, ", ".join(record.missing_fields)
        )
    return record


def execution_price(sats: int | None, tokens_base: int | None) -> Decimal | None:
    if sats is None or tokens_base is None:
        return None
    tokens = abs(tokens_base)
    if tokens == 0:
        return None
    return price_ratio(Decimal(abs(sats)) * UNIT_SCALE, Decimal(tokens))


def pool_balances_after(tx: LedgerTransaction) -> tuple[int | None, int | None]:
    """sBTC (sats) and token (base units) pool balances from the contract's print log."""
    sbtc = token = None
    for ev in tx.events:
        if not ev.is_contract_log or not ev.log_repr:
            continue
        if ev.contract_id and tx.contract_id and ev.contract_id != tx.contract_id:
            continue
        sbtc_match = _SBTC_BALANCE.search(ev.log_repr)
        token_match = _TOKEN_BALANCE.search(ev.log_repr)
        if sbtc is None and sbtc_match:
            sbtc = int(sbtc_match.group(1))
        if token is None and token_match:
            token = int(token_match.group(1))
    return sbtc, token


def pool_price_after(sbtc_balance: int | None, token_balance: int | None) -> Decimal | None:
    if sbtc_balance is None or token_balance is None or token_balance <= 0:
        return None
    try:
        return quantize_price(current_price(PoolState(sbtc_balance, base_to_tokens(token_balance))))
    except InsufficientLiquidityError:
        return None


def estimate_output(direction: SwapDirection, declared_input: int, price: Decimal) -> int | None:
    """Low-confidence output in base units; None if the input can't be priced."""
    if declared_input <= 0:
        return None
    if direction is SwapDirection.BUY:
        return tokens_to_base(estimated_output(direction, declared_input, price))
    return int(estimated_output(direction, base_to_tokens(declared_input), price))


def slippage_protected(post_condition_mode: str | None) -> bool | None:
    if post_condition_mode is None:
        return None
    return post_condition_mode == GuardMode.DENY.value


def _output_from_result(tx: LedgerTransaction) -> int | None:
    if not tx.result_repr:
        return None
    m = _OK_UINT.search(tx.result_repr)
    return int(m.group(1)) if m else None


def _output_from_transfers(
    tx: LedgerTransaction, direction: SwapDirection, assets: AssetIds
) -> int | None:
    for ev in tx.events:
        if not ev.is_ft_transfer or ev.amount is None:
            continue
        if ev.recipient != tx.sender_address:
            continue
        if direction is SwapDirection.SELL:
            if assets.is_sbtc(ev.asset_identifier):
                return ev.amount
        elif ev.asset_identifier == assets.token:
            return ev.amount
    return None
