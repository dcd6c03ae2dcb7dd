"""Base-unit arithmetic for sBTC (sats) and the curve token.

Both assets use 8 decimals on the ledger. Sats are handled as plain int;
whole-token quantities and prices as Decimal. No float anywhere on the
money path.
"""

import re
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Context, Decimal, InvalidOperation

UNIT_SCALE = 10**8
TOKEN_QUANTUM = Decimal(1).scaleb(-8)  # 0.00000001
PRICE_QUANTUM = Decimal(1).scaleb(-18)  # scale of the NUMERIC(38, 18) price columns

_PRICE_CONTEXT = Context(prec=38)

_UINT_REPR = re.compile(r"^u(\d+)$")


def to_decimal(value: object) -> Decimal:
    """Coerce user input to Decimal; raises ValueError for non-numeric/non-finite."""
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a number: {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return dec


def floor_sats(amount: Decimal) -> int:
    """Floor to a whole number of sats."""
    return int(amount.to_integral_value(rounding=ROUND_FLOOR))


def floor_tokens(amount: Decimal) -> Decimal:
    """Floor to the smallest token unit (8 decimals)."""
    return amount.quantize(TOKEN_QUANTUM, rounding=ROUND_FLOOR)


def tokens_to_base(tokens: Decimal) -> int:
    """Whole tokens -> base units, floored (never credits a fractional unit)."""
    return floor_sats(tokens * UNIT_SCALE)


def base_to_tokens(base_units: int) -> Decimal:
    return Decimal(base_units) / UNIT_SCALE


def parse_uint_repr(repr_: str | None) -> int | None:
    """Clarity ``u123`` repr -> 123, or None if it isn't a bare uint."""
    if not repr_:
        return None
    m = _UINT_REPR.match(repr_.strip())
    return int(m.group(1)) if m else None


def quantize_price(price: Decimal) -> Decimal:
    """Round to the stored price scale, half away from zero like Postgres NUMERIC."""
    return price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP, context=_PRICE_CONTEXT)


def price_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator at the stored price scale."""
    return quantize_price(_PRICE_CONTEXT.divide(numerator, denominator))
