"""SwapApplicationService — server side of a wallet-signed swap.

prepare():   builds the swap request against a fresh pool read and returns the
             exact contract call (args, guard mode, guard conditions) to sign.
submitted(): records the broadcast transaction id in the wallet's session
             context; a repeat of the last id is a duplicate submission and a
             different id while one is still in flight is refused.
confirm():   polls the ledger for a terminal status and, on success, hands the
             transaction to the reconciler.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.dex_common.datetime_utils import utc_now
from src.dex_common.enums import TxStatus
from src.dex_common.errors import (
    DuplicateSubmissionError,
    InvalidInputError,
    SwapInProgressError,
)
from src.dex_ledger.domain.models import AssetIds
from src.dex_reconcile.application.reconciler import LedgerReconciler
from src.dex_reconcile.application.schemas import ReconcileResultResponse
from src.dex_swap.application.orchestrator import POLL_TIMEOUT_SECONDS, SwapOrchestrator
from src.dex_swap.application.schemas import (
    ConfirmSwapResponse,
    PendingTransactionResponse,
    PreparedSwapResponse,
    PrepareSwapRequest,
    SubmittedSwapRequest,
)
from src.dex_swap.domain.models import PendingTransaction
from src.dex_swap.infrastructure.ledger_pool_source import LedgerPoolSource
from src.dex_swap.infrastructure.session_store import SessionStore

logger = logging.getLogger(__name__)


class SwapApplicationService:
    def __init__(
        self,
        source: LedgerPoolSource,
        sessions: SessionStore,
        assets: AssetIds,
        reconciler: LedgerReconciler | None = None,
        orchestrator: SwapOrchestrator | None = None,
    ) -> None:
        self._source = source
        self._sessions = sessions
        self._assets = assets
        self._reconciler = reconciler
        self._orchestrator = orchestrator or SwapOrchestrator(source, assets)

    async def prepare(self, body: PrepareSwapRequest) -> PreparedSwapResponse:
        req = await self._orchestrator.build_request(
            body.wallet_address, body.direction, body.amount, body.slippage_tolerance
        )
        return PreparedSwapResponse.from_request(
            self._assets.dex_contract_id, self._source.contract_args(req), req
        )

    async def submitted(self, body: SubmittedSwapRequest) -> PendingTransactionResponse:
        if body.amount <= 0:
            raise InvalidInputError(f"amount must be positive, got {body.amount}")
        ctx = await self._sessions.load(body.wallet_address)
        if ctx.last_transaction_id == body.transaction_id:
            logger.warning(
                "Duplicate submission %s for %s", body.transaction_id, body.wallet_address
            )
            raise DuplicateSubmissionError(body.transaction_id)
        now = utc_now()
        if ctx.has_in_flight(now, POLL_TIMEOUT_SECONDS):
            raise SwapInProgressError(body.wallet_address)
        ctx.begin(body.transaction_id, now)
        await self._sessions.save(ctx)
        pending = PendingTransaction(
            transaction_id=body.transaction_id,
            direction=body.direction,
            input_amount=body.amount,
            submitted_at=now,
        )
        return PendingTransactionResponse.from_domain(pending)

    async def confirm(
        self,
        wallet_address: str,
        transaction_id: str,
        db: AsyncSession,
        timeout: float | None = None,
    ) -> ConfirmSwapResponse:
        result = await self._orchestrator.wait_for_terminal_status(transaction_id, timeout=timeout)
        ctx = await self._sessions.load(wallet_address)
        if result.status is not TxStatus.TIMEOUT:
            ctx.release(transaction_id)
            await self._sessions.save(ctx)

        reconciliation = None
        if result.status is TxStatus.SUCCESS and result.transaction is not None:
            if self._reconciler is not None:
                outcome = await self._reconciler.reconcile(result.transaction, db)
                reconciliation = ReconcileResultResponse.from_domain(outcome)
        logger.info(
            "Confirm %s for %s: %s after %.1fs",
            transaction_id, wallet_address, result.status, result.waited_seconds,
        )
        tx = result.transaction
        return ConfirmSwapResponse(
            transaction_id=transaction_id,
            status=result.status,
            ledger_status=tx.tx_status if tx else None,
            waited_seconds=round(result.waited_seconds, 3),
            reconciliation=reconciliation,
        )
