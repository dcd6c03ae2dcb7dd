# src/dex_swap/application/orchestrator.py
"""SwapOrchestrator — Built → Submitted → Pending → terminal.

Flow per swap:
  1. build: validate amount, fresh pool read, price + expected output, guard plan
  2. submit via PoolSource (bounded retry on connectivity errors only)
  3. duplicate check against the session's last transaction id
  4. wait_for_terminal_status: poll every 3s for up to 60s
  5. CONFIRMED → reconcile hook + transactionSuccessful
     FAILED / TIMED_OUT / DUPLICATE_DETECTED → transactionFailed, no reconcile

Build-time validation errors (InvalidInputError, InsufficientLiquidityError)
are raised to the caller; everything after submission is reported on the
returned SwapOutcome.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from src.dex_common.datetime_utils import utc_now
from src.dex_common.enums import SwapDirection, SwapState, TxStatus
from src.dex_common.errors import (
    AppError,
    ConfirmationTimeoutError,
    DuplicateSubmissionError,
    InvalidInputError,
    NetworkUnavailableError,
    SubmissionRejectedError,
    SwapInProgressError,
    TransactionNotFoundError,
)
from src.dex_common.units import to_decimal
from src.dex_ledger.domain.models import AssetIds, LedgerTransaction
from src.dex_pricing.domain.pricing import (
    TOKENS_SAFETY_MARGIN,
    current_price,
    estimated_output,
)
from src.dex_swap.domain.events import (
    TRANSACTION_FAILED,
    TRANSACTION_PENDING,
    TRANSACTION_SUCCESSFUL,
    SwapEvent,
    SwapEventNotifier,
)
from src.dex_swap.domain.models import (
    PendingTransaction,
    SessionContext,
    SwapOutcome,
    SwapRequest,
)
from src.dex_swap.domain.pool_source import PoolSource
from src.dex_swap.domain.slippage import (
    build_guard,
    compute_bounds,
    input_base_units,
    parse_tolerance,
)
from src.dex_swap.domain.state_machine import ledger_terminal_status

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 3.0
POLL_TIMEOUT_SECONDS = 60.0
RETRY_BACKOFF_SECONDS = (1.0, 2.0, 3.0)
MAX_SUBMIT_RETRIES = 2

ReconcileHook = Callable[[LedgerTransaction], Awaitable[Any]]


@dataclass(frozen=True)
class PollResult:
    status: TxStatus | None  # None when polling was cancelled
    transaction: LedgerTransaction | None
    waited_seconds: float

    @property
    def cancelled(self) -> bool:
        return self.status is None


class SwapOrchestrator:
    def __init__(
        self,
        source: PoolSource,
        assets: AssetIds,
        notifier: SwapEventNotifier | None = None,
        reconcile: ReconcileHook | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_timeout: float = POLL_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._assets = assets
        self._notifier = notifier or SwapEventNotifier()
        self._reconcile = reconcile
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._sleep = sleep
        self._clock = clock
        self._active_wallets: set[str] = set()

    # ------------------------------------------------------------------
    # Built
    # ------------------------------------------------------------------

    async def build_request(
        self,
        wallet_address: str,
        direction: SwapDirection | str,
        amount: object,
        slippage_tolerance: object | None = None,
    ) -> SwapRequest:
        try:
            direction = SwapDirection(direction)
        except ValueError as exc:
            raise InvalidInputError(f"unknown direction {direction!r}") from exc
        try:
            amt = to_decimal(amount)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        if amt <= 0:
            raise InvalidInputError(f"amount must be positive, got {amt}")
        input_base_units(direction, amt)  # rejects sub-unit precision
        tolerance = parse_tolerance(slippage_tolerance)

        if direction is SwapDirection.SELL:
            balance = await self._source.reported_balance(wallet_address, direction)
            if amt > balance - TOKENS_SAFETY_MARGIN:
                raise InvalidInputError(
                    f"sell amount {amt} exceeds available balance {balance}"
                )

        pool = await self._source.read_pool()
        price = current_price(pool)
        output = estimated_output(direction, amt, price)
        bounds = (
            compute_bounds(direction, output, price, tolerance) if tolerance is not None else None
        )
        guard = build_guard(direction, wallet_address, amt, bounds, self._assets)
        return SwapRequest(
            wallet_address=wallet_address,
            direction=direction,
            input_amount=amt,
            expected_output=output,
            current_price_at_submit=price,
            slippage_tolerance=tolerance,
            min_acceptable_output=bounds.min_acceptable_output if bounds else None,
            bounds=bounds,
            guard=guard,
        )

    # ------------------------------------------------------------------
    # Full flow
    # ------------------------------------------------------------------

    async def execute(
        self,
        ctx: SessionContext,
        direction: SwapDirection | str,
        amount: object,
        slippage_tolerance: object | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> SwapOutcome:
        wallet = ctx.wallet_address
        if wallet in self._active_wallets:
            raise SwapInProgressError(wallet)
        self._active_wallets.add(wallet)
        try:
            request = await self.build_request(wallet, direction, amount, slippage_tolerance)
            outcome = SwapOutcome(request=request)
            await self._run(ctx, outcome, cancel_event)
            return outcome
        finally:
            self._active_wallets.discard(wallet)

    async def _run(
        self,
        ctx: SessionContext,
        outcome: SwapOutcome,
        cancel_event: asyncio.Event | None,
    ) -> None:
        request = outcome.request
        try:
            tx_id = await self._submit_with_retry(ctx, request)
        except (SubmissionRejectedError, NetworkUnavailableError) as exc:
            outcome.advance(SwapState.FAILED)
            outcome.error = exc
            await self._notify_failed(request, None, exc)
            return

        outcome.advance(SwapState.SUBMITTED)
        pending = PendingTransaction(
            transaction_id=tx_id,
            direction=request.direction,
            input_amount=request.input_amount,
            submitted_at=utc_now(),
        )
        outcome.pending = pending

        if ctx.last_transaction_id == tx_id:
            pending.mark(TxStatus.DUPLICATE)
            outcome.advance(SwapState.DUPLICATE_DETECTED)
            outcome.error = DuplicateSubmissionError(tx_id)
            logger.warning("Duplicate submission detected: %s", tx_id)
            await self._notify_failed(request, tx_id, outcome.error)
            return

        ctx.begin(tx_id, pending.submitted_at)
        outcome.advance(SwapState.PENDING)
        await self._notifier.publish(
            SwapEvent(TRANSACTION_PENDING, request.direction, request.input_amount, tx_id)
        )

        result = await self.wait_for_terminal_status(tx_id, cancel_event=cancel_event)
        if result.cancelled:
            logger.info("Stopped polling %s on request; ledger state unchanged", tx_id)
            return

        ctx.release(tx_id)
        pending.mark(result.status)
        if result.status is TxStatus.SUCCESS:
            outcome.advance(SwapState.CONFIRMED)
            outcome.reconciliation = await self._handoff(result.transaction)
            await self._notifier.publish(
                SwapEvent(TRANSACTION_SUCCESSFUL, request.direction, request.input_amount, tx_id)
            )
        elif result.status is TxStatus.TIMEOUT:
            outcome.advance(SwapState.TIMED_OUT)
            outcome.error = ConfirmationTimeoutError(tx_id, result.waited_seconds)
            await self._notify_failed(request, tx_id, outcome.error)
        else:
            outcome.advance(SwapState.FAILED)
            reason = result.transaction.tx_status if result.transaction else "failed"
            outcome.error = SubmissionRejectedError(f"transaction {tx_id} ended with {reason}")
            await self._notify_failed(request, tx_id, outcome.error)

    # ------------------------------------------------------------------
    # Submitted
    # ------------------------------------------------------------------

    async def _submit_with_retry(self, ctx: SessionContext, request: SwapRequest) -> str:
        retries = 0
        while True:
            try:
                tx_id = await self._source.submit(request)
                logger.info(
                    "Submitted %s amount=%s protected=%s tx=%s",
                    request.direction.value, request.input_amount,
                    request.slippage_protected, tx_id,
                )
                return tx_id
            except SubmissionRejectedError:
                logger.info("Submission rejected by wallet for %s", ctx.wallet_address)
                raise
            except (NetworkUnavailableError, OSError) as exc:
                logger.warning("Submission connectivity error (retry %d): %s", retries, exc)
                network_down = False
                if not ctx.network_checked:
                    if await self._source.health_check():
                        ctx.network_checked = True
                    else:
                        network_down = True
                if retries >= MAX_SUBMIT_RETRIES:
                    if network_down:
                        raise NetworkUnavailableError(
                            "Ledger network unreachable (health check failed)"
                        ) from exc
                    raise SubmissionRejectedError(
                        f"connectivity failure after {retries + 1} attempts: {exc}"
                    ) from exc
                await self._sleep(RETRY_BACKOFF_SECONDS[retries])
                retries += 1

    # ------------------------------------------------------------------
    # Pending
    # ------------------------------------------------------------------

    async def wait_for_terminal_status(
        self,
        transaction_id: str,
        timeout: float | None = None,
        interval: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> PollResult:
        """Poll until success/failure, the timeout budget runs out, or cancel_event is set."""
        timeout = self._poll_timeout if timeout is None else timeout
        interval = self._poll_interval if interval is None else interval
        started = self._clock()
        deadline = started + timeout
        last: LedgerTransaction | None = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                return PollResult(None, last, self._clock() - started)
            try:
                tx = await self._source.poll_status(transaction_id)
            except TransactionNotFoundError:
                logger.debug("Transaction %s not indexed yet", transaction_id)
            except (AppError, OSError) as exc:
                logger.warning("Status poll failed for %s: %s", transaction_id, exc)
            else:
                last = tx
                status = ledger_terminal_status(tx.tx_status)
                if status is not None:
                    return PollResult(status, tx, self._clock() - started)

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning("No terminal status for %s after %.0fs", transaction_id, timeout)
                return PollResult(TxStatus.TIMEOUT, last, self._clock() - started)
            await self._sleep(min(interval, remaining))

    # ------------------------------------------------------------------
    # Confirmed
    # ------------------------------------------------------------------

    async def _handoff(self, tx: LedgerTransaction | None) -> Any:
        if self._reconcile is None or tx is None:
            return None
        try:
            return await self._reconcile(tx)
        except AppError as exc:
            # confirmed on-chain regardless; contract sync + backfill pick it up later
            logger.error("Reconcile hand-off failed for %s: %s", tx.tx_id, exc.message)
            return None

    async def _notify_failed(
        self, request: SwapRequest, tx_id: str | None, error: AppError
    ) -> None:
        await self._notifier.publish(
            SwapEvent(
                TRANSACTION_FAILED,
                request.direction,
                request.input_amount,
                tx_id,
                error.message,
            )
        )
