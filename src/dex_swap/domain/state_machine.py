# src/dex_swap/domain/state_machine.py
"""Forward-only transitions for swap flows and pending transactions.

Terminal states never change; any other move must be listed in
_SWAP_TRANSITIONS.
"""

from dataclasses import dataclass

from src.dex_common.enums import SwapState, TxStatus

TERMINAL_SWAP_STATES: frozenset[SwapState] = frozenset({
    SwapState.CONFIRMED,
    SwapState.FAILED,
    SwapState.TIMED_OUT,
    SwapState.DUPLICATE_DETECTED,
})

TERMINAL_TX_STATUSES: frozenset[TxStatus] = frozenset({
    TxStatus.SUCCESS,
    TxStatus.FAILED,
    TxStatus.TIMEOUT,
    TxStatus.DUPLICATE,
})

_SWAP_TRANSITIONS: dict[SwapState, frozenset[SwapState]] = {
    SwapState.BUILT: frozenset({SwapState.SUBMITTED, SwapState.FAILED}),
    SwapState.SUBMITTED: frozenset({
        SwapState.PENDING,
        SwapState.FAILED,
        SwapState.DUPLICATE_DETECTED,
    }),
    SwapState.PENDING: frozenset({
        SwapState.CONFIRMED,
        SwapState.FAILED,
        SwapState.TIMED_OUT,
    }),
}

# raw ledger tx_status -> local terminal status; anything else keeps polling
_LEDGER_TERMINAL: dict[str, TxStatus] = {
    "success": TxStatus.SUCCESS,
    "abort_by_response": TxStatus.FAILED,
    "abort_by_post_condition": TxStatus.FAILED,
    "failed": TxStatus.FAILED,
    "dropped_replace_by_fee": TxStatus.FAILED,
    "dropped_stale_garbage_collect": TxStatus.FAILED,
}


@dataclass(frozen=True)
class Decision:
    allow: bool
    reason: str = ""


def can_transition(current: SwapState, target: SwapState) -> Decision:
    if current in TERMINAL_SWAP_STATES:
        return Decision(False, f"terminal state is final: {current.value} -> {target.value}")
    if target not in _SWAP_TRANSITIONS.get(current, frozenset()):
        return Decision(False, f"illegal transition: {current.value} -> {target.value}")
    return Decision(True, "ok")


def should_apply_status(current: TxStatus, incoming: TxStatus) -> Decision:
    if current in TERMINAL_TX_STATUSES and incoming != current:
        return Decision(False, f"terminal regression blocked: {current.value} -> {incoming.value}")
    return Decision(True, "ok")


def ledger_terminal_status(tx_status: str | None) -> TxStatus | None:
    """Map a ledger ``tx_status`` to SUCCESS/FAILED, or None while still pending."""
    if not tx_status:
        return None
    return _LEDGER_TERMINAL.get(tx_status)
