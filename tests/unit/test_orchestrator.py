# tests/unit/test_orchestrator.py
"""SwapOrchestrator flow tests against an in-memory PoolSource and a fake clock."""
import asyncio
from decimal import Decimal

import pytest

from src.dex_common.enums import GuardMode, SwapDirection, SwapState, TxStatus
from src.dex_common.errors import (
    ConfirmationTimeoutError,
    DuplicateSubmissionError,
    InternalError,
    InvalidInputError,
    NetworkUnavailableError,
    SubmissionRejectedError,
    SwapInProgressError,
    TransactionNotFoundError,
)
from src.dex_ledger.domain.models import AssetIds, LedgerTransaction
from src.dex_pricing.domain.models import PoolState
from src.dex_swap.application.orchestrator import SwapOrchestrator
from src.dex_swap.domain.events import (
    TRANSACTION_FAILED,
    TRANSACTION_PENDING,
    TRANSACTION_SUCCESSFUL,
    SwapEvent,
    SwapEventNotifier,
)
from src.dex_swap.domain.models import SessionContext, SwapRequest

WALLET = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"


class FakeSource:
    def __init__(
        self,
        tx_id: str = "0xabc",
        statuses: list[object] | None = None,
        submit_errors: list[Exception] | None = None,
        balance: Decimal = Decimal(1000),
        healthy: bool = True,
    ) -> None:
        self.pool = PoolState(sbtc_balance=500_000, token_balance=Decimal(1_000_000))
        self.tx_id = tx_id
        self.statuses = list(statuses or ["success"])
        self.submit_errors = list(submit_errors or [])
        self.balance = balance
        self.healthy = healthy
        self.submitted: list[SwapRequest] = []
        self.health_checks = 0
        self.polls = 0

    async def read_pool(self) -> PoolState:
        return self.pool

    async def reported_balance(self, wallet_address: str, direction: SwapDirection) -> Decimal:
        return self.balance

    async def submit(self, request: SwapRequest) -> str:
        self.submitted.append(request)
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        return self.tx_id

    async def poll_status(self, transaction_id: str) -> LedgerTransaction:
        self.polls += 1
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(status, Exception):
            raise status
        return LedgerTransaction(
            tx_id=transaction_id,
            tx_status=status,
            tx_type="contract_call",
            sender_address=WALLET,
            fee=0,
            block_height=None,
            block_time=None,
            contract_id=None,
            function_name="buy",
        )

    async def health_check(self) -> bool:
        self.health_checks += 1
        return self.healthy


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> list[SwapEvent]:
    return []


@pytest.fixture
def notifier(events: list[SwapEvent]) -> SwapEventNotifier:
    async def record(event: SwapEvent) -> None:
        events.append(event)

    n = SwapEventNotifier()
    n.subscribe(record)
    return n


def _orchestrator(
    source: FakeSource,
    assets: AssetIds,
    clock: FakeClock,
    notifier: SwapEventNotifier | None = None,
    reconcile=None,
) -> SwapOrchestrator:
    return SwapOrchestrator(
        source, assets, notifier=notifier, reconcile=reconcile, sleep=clock.sleep, clock=clock
    )


class TestBuildRequest:
    async def test_buy_with_guard(self, assets: AssetIds, clock: FakeClock) -> None:
        orch = _orchestrator(FakeSource(), assets, clock)
        req = await orch.build_request(WALLET, "buy", 1000, 5)
        assert req.direction is SwapDirection.BUY
        assert req.current_price_at_submit == Decimal(2)
        assert req.expected_output == Decimal(490)
        assert req.min_acceptable_output == Decimal("465.5")
        assert req.guard is not None
        assert req.guard.mode is GuardMode.DENY
        assert req.slippage_protected

    async def test_guard_disabled(self, assets: AssetIds, clock: FakeClock) -> None:
        req = await _orchestrator(FakeSource(), assets, clock).build_request(WALLET, "sell", 10_000)
        assert req.expected_output == Decimal(19_600)
        assert req.min_acceptable_output is None
        assert req.guard is not None and req.guard.mode is GuardMode.ALLOW
        assert not req.slippage_protected

    @pytest.mark.parametrize("amount", [0, -1, "abc", "10.5"])
    async def test_invalid_buy_amount(self, assets: AssetIds, clock: FakeClock, amount: object) -> None:
        with pytest.raises(InvalidInputError):
            await _orchestrator(FakeSource(), assets, clock).build_request(WALLET, "buy", amount)

    async def test_sell_respects_safety_margin(self, assets: AssetIds, clock: FakeClock) -> None:
        orch = _orchestrator(FakeSource(balance=Decimal(100)), assets, clock)
        with pytest.raises(InvalidInputError, match="exceeds available balance"):
            await orch.build_request(WALLET, "sell", 100)
        req = await orch.build_request(WALLET, "sell", "99.99999999")
        assert req.input_amount == Decimal("99.99999999")

    async def test_bad_tolerance(self, assets: AssetIds, clock: FakeClock) -> None:
        with pytest.raises(InvalidInputError):
            await _orchestrator(FakeSource(), assets, clock).build_request(WALLET, "buy", 1000, 150)


class TestExecuteConfirmed:
    async def test_confirmed_reconciles_and_notifies(
        self, assets: AssetIds, clock: FakeClock, notifier: SwapEventNotifier, events: list[SwapEvent]
    ) -> None:
        reconciled: list[LedgerTransaction] = []

        async def reconcile(tx: LedgerTransaction) -> str:
            reconciled.append(tx)
            return "inserted"

        source = FakeSource(statuses=["pending", "success"])
        orch = _orchestrator(source, assets, clock, notifier, reconcile)
        ctx = SessionContext(WALLET)

        outcome = await orch.execute(ctx, "buy", 1000, 5)

        assert outcome.state is SwapState.CONFIRMED
        assert outcome.history == [
            SwapState.BUILT, SwapState.SUBMITTED, SwapState.PENDING, SwapState.CONFIRMED,
        ]
        assert outcome.pending is not None and outcome.pending.status is TxStatus.SUCCESS
        assert outcome.reconciliation == "inserted"
        assert [t.tx_id for t in reconciled] == ["0xabc"]
        assert [e.name for e in events] == [TRANSACTION_PENDING, TRANSACTION_SUCCESSFUL]
        assert ctx.last_transaction_id == "0xabc"
        assert ctx.in_flight_transaction_id is None
        assert clock.sleeps == [3.0]

    async def test_reconcile_failure_keeps_confirmed(self, assets: AssetIds, clock: FakeClock) -> None:
        async def reconcile(tx: LedgerTransaction) -> None:
            raise InternalError("store down")

        outcome = await _orchestrator(FakeSource(), assets, clock, reconcile=reconcile).execute(
            SessionContext(WALLET), "buy", 1000
        )
        assert outcome.state is SwapState.CONFIRMED
        assert outcome.reconciliation is None

    async def test_failing_observer_does_not_change_outcome(
        self, assets: AssetIds, clock: FakeClock
    ) -> None:
        async def broken(event: SwapEvent) -> None:
            raise RuntimeError("push service down")

        notifier = SwapEventNotifier()
        notifier.subscribe(broken)
        outcome = await _orchestrator(FakeSource(), assets, clock, notifier).execute(
            SessionContext(WALLET), "buy", 1000
        )
        assert outcome.state is SwapState.CONFIRMED


class TestExecuteNotConfirmed:
    async def test_scenario_d_timeout(
        self, assets: AssetIds, clock: FakeClock, notifier: SwapEventNotifier, events: list[SwapEvent]
    ) -> None:
        reconciled: list[LedgerTransaction] = []

        async def reconcile(tx: LedgerTransaction) -> None:
            reconciled.append(tx)

        source = FakeSource(statuses=["pending"])
        outcome = await _orchestrator(source, assets, clock, notifier, reconcile).execute(
            SessionContext(WALLET), "buy", 1000
        )

        assert outcome.state is SwapState.TIMED_OUT
        assert isinstance(outcome.error, ConfirmationTimeoutError)
        assert outcome.pending is not None and outcome.pending.status is TxStatus.TIMEOUT
        assert reconciled == []
        assert sum(clock.sleeps) == pytest.approx(60.0)
        assert source.polls == 21
        assert events[-1].name == TRANSACTION_FAILED

    async def test_ledger_abort_fails(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(statuses=["abort_by_post_condition"])
        outcome = await _orchestrator(source, assets, clock).execute(
            SessionContext(WALLET), "buy", 1000, 1
        )
        assert outcome.state is SwapState.FAILED
        assert isinstance(outcome.error, SubmissionRejectedError)
        assert "abort_by_post_condition" in outcome.error.message

    async def test_duplicate_detected(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(tx_id="0xabc")
        ctx = SessionContext(WALLET, last_transaction_id="0xabc")
        outcome = await _orchestrator(source, assets, clock).execute(ctx, "buy", 1000)
        assert outcome.state is SwapState.DUPLICATE_DETECTED
        assert isinstance(outcome.error, DuplicateSubmissionError)
        assert outcome.pending is not None and outcome.pending.status is TxStatus.DUPLICATE
        assert source.polls == 0

    async def test_cancel_stops_polling_only(self, assets: AssetIds, clock: FakeClock) -> None:
        cancel = asyncio.Event()
        cancel.set()
        source = FakeSource(statuses=["pending"])
        ctx = SessionContext(WALLET)
        outcome = await _orchestrator(source, assets, clock).execute(
            ctx, "buy", 1000, cancel_event=cancel
        )
        assert outcome.state is SwapState.PENDING
        assert outcome.pending is not None and outcome.pending.status is TxStatus.PENDING
        assert ctx.in_flight_transaction_id == "0xabc"
        assert source.polls == 0

    async def test_wallet_cancel_is_not_retried(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(submit_errors=[SubmissionRejectedError("user cancelled")])
        outcome = await _orchestrator(source, assets, clock).execute(
            SessionContext(WALLET), "buy", 1000
        )
        assert outcome.state is SwapState.FAILED
        assert outcome.history == [SwapState.BUILT, SwapState.FAILED]
        assert len(source.submitted) == 1
        assert source.health_checks == 0


class TestSubmitRetry:
    async def test_connectivity_retry_then_success(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(submit_errors=[NetworkUnavailableError(), OSError("reset")])
        ctx = SessionContext(WALLET)
        outcome = await _orchestrator(source, assets, clock).execute(ctx, "buy", 1000)
        assert outcome.state is SwapState.CONFIRMED
        assert len(source.submitted) == 3
        assert source.health_checks == 1
        assert ctx.network_checked
        assert clock.sleeps == [1.0, 2.0]

    async def test_retries_capped(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(submit_errors=[NetworkUnavailableError()] * 3)
        outcome = await _orchestrator(source, assets, clock).execute(
            SessionContext(WALLET), "buy", 1000
        )
        assert outcome.state is SwapState.FAILED
        assert isinstance(outcome.error, SubmissionRejectedError)
        assert len(source.submitted) == 3
        assert clock.sleeps == [1.0, 2.0]

    async def test_health_check_failure_surfaces_after_retries(
        self, assets: AssetIds, clock: FakeClock
    ) -> None:
        source = FakeSource(submit_errors=[OSError("unreachable")] * 3, healthy=False)
        ctx = SessionContext(WALLET)
        outcome = await _orchestrator(source, assets, clock).execute(ctx, "buy", 1000)
        assert outcome.state is SwapState.FAILED
        assert isinstance(outcome.error, NetworkUnavailableError)
        assert len(source.submitted) == 3
        assert source.health_checks == 3
        assert clock.sleeps == [1.0, 2.0]
        assert not ctx.network_checked

    async def test_transient_network_outage_recovers(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(submit_errors=[OSError("unreachable")], healthy=False)
        outcome = await _orchestrator(source, assets, clock).execute(
            SessionContext(WALLET), "buy", 1000
        )
        assert outcome.state is SwapState.CONFIRMED
        assert len(source.submitted) == 2
        assert clock.sleeps == [1.0]


class TestConcurrency:
    async def test_second_swap_for_same_wallet_refused(
        self, assets: AssetIds, clock: FakeClock
    ) -> None:
        gate = asyncio.Event()

        class GatedSource(FakeSource):
            async def submit(self, request: SwapRequest) -> str:
                await gate.wait()
                return await super().submit(request)

        orch = _orchestrator(GatedSource(), assets, clock)
        first = asyncio.create_task(orch.execute(SessionContext(WALLET), "buy", 1000))
        await asyncio.sleep(0)

        with pytest.raises(SwapInProgressError):
            await orch.execute(SessionContext(WALLET), "buy", 500)

        gate.set()
        outcome = await first
        assert outcome.state is SwapState.CONFIRMED

        again = await orch.execute(SessionContext(WALLET), "buy", 500)
        assert again.state is SwapState.CONFIRMED

    async def test_other_wallets_unaffected(self, assets: AssetIds, clock: FakeClock) -> None:
        gate = asyncio.Event()

        class GatedSource(FakeSource):
            async def submit(self, request: SwapRequest) -> str:
                if request.wallet_address == WALLET:
                    await gate.wait()
                return await super().submit(request)

        orch = _orchestrator(GatedSource(), assets, clock)
        first = asyncio.create_task(orch.execute(SessionContext(WALLET), "buy", 1000))
        await asyncio.sleep(0)
        other = await orch.execute(SessionContext("ST3OTHER"), "buy", 1000)
        assert other.state is SwapState.CONFIRMED
        gate.set()
        await first


class TestWaitForTerminalStatus:
    async def test_not_indexed_yet_keeps_polling(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(statuses=[TransactionNotFoundError("0xabc"), NetworkUnavailableError(), "success"])
        result = await _orchestrator(source, assets, clock).wait_for_terminal_status("0xabc")
        assert result.status is TxStatus.SUCCESS
        assert source.polls == 3
        assert clock.sleeps == [3.0, 3.0]

    async def test_custom_timeout_and_interval(self, assets: AssetIds, clock: FakeClock) -> None:
        source = FakeSource(statuses=["pending"])
        result = await _orchestrator(source, assets, clock).wait_for_terminal_status(
            "0xabc", timeout=10, interval=4
        )
        assert result.status is TxStatus.TIMEOUT
        assert clock.sleeps == [4, 4, 2]
        assert result.waited_seconds == 10
        assert result.transaction is not None and result.transaction.tx_status == "pending"
