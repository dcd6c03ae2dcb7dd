"""Swap domain models — request, pending transaction, session context, flow outcome."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.dex_common.enums import SwapDirection, SwapState, TxStatus
from src.dex_common.errors import AppError, InvalidStateTransitionError
from src.dex_swap.domain.slippage import GuardPlan, SlippageBounds
from src.dex_swap.domain.state_machine import can_transition, should_apply_status


@dataclass(frozen=True)
class SwapRequest:
    """Immutable once built."""

    wallet_address: str
    direction: SwapDirection
    input_amount: Decimal  # sats for buy, whole tokens for sell
    expected_output: Decimal
    current_price_at_submit: Decimal
    slippage_tolerance: Decimal | None = None
    min_acceptable_output: Decimal | None = None
    bounds: SlippageBounds | None = None
    guard: GuardPlan | None = None

    @property
    def slippage_protected(self) -> bool:
        return self.guard is not None and self.guard.slippage_protected


@dataclass
class PendingTransaction:
    transaction_id: str
    direction: SwapDirection
    input_amount: Decimal
    submitted_at: datetime
    status: TxStatus = TxStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status is not TxStatus.PENDING

    def mark(self, status: TxStatus) -> None:
        decision = should_apply_status(self.status, status)
        if not decision.allow:
            raise InvalidStateTransitionError(decision.reason)
        self.status = status


@dataclass
class SessionContext:
    """Per-wallet flow state; the caller persists it between requests."""

    wallet_address: str
    last_transaction_id: str | None = None
    network_checked: bool = False
    in_flight_transaction_id: str | None = None
    in_flight_since: datetime | None = None

    def begin(self, transaction_id: str, now: datetime) -> None:
        self.last_transaction_id = transaction_id
        self.in_flight_transaction_id = transaction_id
        self.in_flight_since = now

    def release(self, transaction_id: str | None = None) -> None:
        if transaction_id is None or transaction_id == self.in_flight_transaction_id:
            self.in_flight_transaction_id = None
            self.in_flight_since = None

    def has_in_flight(self, now: datetime, max_age_seconds: float) -> bool:
        """An in-flight marker older than the polling budget no longer blocks."""
        if self.in_flight_transaction_id is None or self.in_flight_since is None:
            return False
        return (now - self.in_flight_since).total_seconds() < max_age_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "wallet_address": self.wallet_address,
            "last_transaction_id": self.last_transaction_id,
            "network_checked": self.network_checked,
            "in_flight_transaction_id": self.in_flight_transaction_id,
            "in_flight_since": self.in_flight_since.isoformat() if self.in_flight_since else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionContext":
        return cls(
            wallet_address=data["wallet_address"],
            last_transaction_id=data.get("last_transaction_id"),
            network_checked=bool(data.get("network_checked", False)),
            in_flight_transaction_id=data.get("in_flight_transaction_id"),
            in_flight_since=_parse_ts(data.get("in_flight_since")),
        )


@dataclass
class SwapOutcome:
    """Result of one orchestrated swap; state only moves forward."""

    request: SwapRequest
    state: SwapState = SwapState.BUILT
    pending: PendingTransaction | None = None
    error: AppError | None = None
    reconciliation: Any = None
    history: list[SwapState] = field(default_factory=lambda: [SwapState.BUILT])

    @property
    def transaction_id(self) -> str | None:
        return self.pending.transaction_id if self.pending else None

    def advance(self, target: SwapState) -> None:
        decision = can_transition(self.state, target)
        if not decision.allow:
            raise InvalidStateTransitionError(decision.reason)
        self.state = target
        self.history.append(target)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
