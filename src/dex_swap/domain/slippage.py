# src/dex_swap/domain/slippage.py
"""Slippage bounds and ledger guard conditions ("post conditions").

Guard enabled (tolerance given):
  mode = deny
  1. sender sends exactly input_amount of the input asset
  2. DEX contract sends >= min_acceptable_output of the output asset
Guard disabled (tolerance None):
  mode = allow, no conditions, slippage_protected = False

All condition amounts are base units (sats / 1e-8 token).
"""

from dataclasses import dataclass, field
from decimal import Decimal

from src.dex_common.enums import GuardComparator, GuardMode, SwapDirection
from src.dex_common.errors import InvalidInputError
from src.dex_common.units import TOKEN_QUANTUM, UNIT_SCALE, floor_sats, floor_tokens, to_decimal
from src.dex_ledger.domain.models import AssetIds


@dataclass(frozen=True)
class SlippageBounds:
    tolerance: Decimal
    boundary_price: Decimal
    min_acceptable_output: Decimal  # output asset units: tokens for buy, sats for sell


@dataclass(frozen=True)
class GuardCondition:
    principal: str
    comparator: GuardComparator
    amount: int
    asset_identifier: str  # "<contract_id>::<asset_name>"


@dataclass(frozen=True)
class GuardPlan:
    mode: GuardMode
    conditions: list[GuardCondition] = field(default_factory=list)

    @property
    def slippage_protected(self) -> bool:
        return self.mode is GuardMode.DENY


def parse_tolerance(tolerance: object | None) -> Decimal | None:
    if tolerance is None:
        return None
    try:
        tol = to_decimal(tolerance)
    except ValueError as exc:
        raise InvalidInputError(f"slippage tolerance: {exc}") from exc
    if not (0 <= tol <= 100):
        raise InvalidInputError(f"slippage tolerance must be within [0, 100], got {tol}")
    return tol


def compute_bounds(
    direction: SwapDirection,
    estimated_output: Decimal,
    current_price: Decimal,
    tolerance: object,
) -> SlippageBounds:
    tol = parse_tolerance(tolerance)
    if tol is None:
        raise InvalidInputError("slippage tolerance required to compute bounds")
    ratio = tol / 100
    if direction is SwapDirection.BUY:
        boundary = current_price * (1 + ratio)
        minimum = floor_tokens(estimated_output * (1 - ratio))
    else:
        boundary = current_price * (1 - ratio)
        minimum = Decimal(floor_sats(estimated_output * (1 - ratio)))
    return SlippageBounds(tolerance=tol, boundary_price=boundary, min_acceptable_output=minimum)


def input_base_units(direction: SwapDirection, amount: Decimal) -> int:
    """Input amount as the uint the contract debits: sats for buy, token base units for sell."""
    if direction is SwapDirection.BUY:
        if amount != amount.to_integral_value():
            raise InvalidInputError(f"buy amount must be whole sats, got {amount}")
        return int(amount)
    if amount != amount.quantize(TOKEN_QUANTUM):
        raise InvalidInputError(f"sell amount has more than 8 decimal places: {amount}")
    return int(amount * UNIT_SCALE)


def output_base_units(direction: SwapDirection, amount: Decimal) -> int:
    if direction is SwapDirection.BUY:
        return floor_sats(amount * UNIT_SCALE)
    return floor_sats(amount)


def build_guard(
    direction: SwapDirection,
    sender: str,
    input_amount: Decimal,
    bounds: SlippageBounds | None,
    assets: AssetIds,
) -> GuardPlan:
    if bounds is None:
        return GuardPlan(mode=GuardMode.ALLOW)
    return GuardPlan(
        mode=GuardMode.DENY,
        conditions=[
            GuardCondition(
                principal=sender,
                comparator=GuardComparator.EQ,
                amount=input_base_units(direction, input_amount),
                asset_identifier=assets.input_asset(direction),
            ),
            GuardCondition(
                principal=assets.dex_contract_id,
                comparator=GuardComparator.GTE,
                amount=output_base_units(direction, bounds.min_acceptable_output),
                asset_identifier=assets.output_asset(direction),
            ),
        ],
    )
