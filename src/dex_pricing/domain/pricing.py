# src/dex_pricing/domain/pricing.py
"""Bonding-curve pricing — pure functions.

    price  = (sbtc_balance + virtual_liquidity) / (token_balance - locked_tokens)
    buy:   tokens_out = sats_in   * (1 - fee) / price     (floored to 1e-8 token)
    sell:  sats_out   = tokens_in * price * (1 - fee)     (floored to 1 sat)

Outputs are always floored to the receiving asset's smallest unit so a quote
never promises more than the contract can pay.
"""

from decimal import Decimal

from src.dex_common.enums import SwapDirection
from src.dex_common.errors import InsufficientLiquidityError, InvalidInputError
from src.dex_common.units import TOKEN_QUANTUM, floor_sats, floor_tokens, to_decimal
from src.dex_pricing.domain.models import PoolState

FEE_RATE = Decimal("0.02")

SATS_SAFETY_MARGIN = 1
TOKENS_SAFETY_MARGIN = TOKEN_QUANTUM


def current_price(pool: PoolState) -> Decimal:
    """Sats per whole token. Raises InsufficientLiquidityError when no tokens are tradeable."""
    available = pool.available_tokens
    if available <= 0:
        raise InsufficientLiquidityError(int(available))
    return (Decimal(pool.sbtc_balance) + Decimal(pool.virtual_liquidity)) / available


def estimated_output(direction: SwapDirection | str, amount: object, price: object) -> Decimal:
    """Expected output for a trade of ``amount`` at ``price``.

    buy: amount in sats, returns whole tokens. sell: amount in whole tokens,
    returns sats (integral Decimal).
    """
    direction = _direction(direction)
    amt = _positive(amount, "amount")
    px = _positive(price, "price")
    net = Decimal(1) - FEE_RATE
    if direction is SwapDirection.BUY:
        return floor_tokens(amt * net / px)
    return Decimal(floor_sats(amt * px * net))


def max_tradeable_amount(
    direction: SwapDirection | str, balance: object, percent: object
) -> Decimal:
    """Amount for a quick-percentage button.

    Keeps a one-smallest-unit margin below the full balance (1 sat for buy,
    1e-8 token for sell). Returns 0 when nothing is tradeable.
    """
    direction = _direction(direction)
    try:
        bal = to_decimal(balance)
        pct = to_decimal(percent)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc
    if not (0 < pct <= 100):
        raise InvalidInputError(f"percent must be in (0, 100], got {pct}")
    if bal <= 0:
        return Decimal(0)

    if direction is SwapDirection.BUY:
        amount = Decimal(floor_sats(bal * pct / 100))
        cap = bal - SATS_SAFETY_MARGIN
    else:
        amount = floor_tokens(bal * pct / 100)
        cap = bal - TOKENS_SAFETY_MARGIN
    return max(Decimal(0), min(amount, cap))


def _direction(value: SwapDirection | str) -> SwapDirection:
    try:
        return SwapDirection(value)
    except ValueError as exc:
        raise InvalidInputError(f"unknown direction {value!r}") from exc


def _positive(value: object, name: str) -> Decimal:
    try:
        dec = to_decimal(value)
    except ValueError as exc:
        raise InvalidInputError(f"{name}: {exc}") from exc
    if dec <= 0:
        raise InvalidInputError(f"{name} must be positive, got {dec}")
    return dec
