"""Pydantic schemas for dex_swap API requests/responses."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.dex_common.enums import GuardComparator, GuardMode, SwapDirection, TxStatus
from src.dex_reconcile.application.schemas import ReconcileResultResponse
from src.dex_swap.domain.models import PendingTransaction, SwapRequest
from src.dex_swap.domain.slippage import GuardCondition


class PrepareSwapRequest(BaseModel):
    wallet_address: str = Field(..., min_length=1)
    direction: SwapDirection
    amount: Decimal = Field(..., description="sats for buy, whole tokens for sell")
    slippage_tolerance: Decimal | None = Field(None, ge=0, le=100)


class GuardConditionOut(BaseModel):
    principal: str
    comparator: GuardComparator
    amount: int
    asset_identifier: str

    @classmethod
    def from_domain(cls, cond: GuardCondition) -> "GuardConditionOut":
        return cls(
            principal=cond.principal,
            comparator=cond.comparator,
            amount=cond.amount,
            asset_identifier=cond.asset_identifier,
        )


class PreparedSwapResponse(BaseModel):
    contract_id: str
    function_name: str
    function_args: list[str]
    guard_mode: GuardMode
    guard_conditions: list[GuardConditionOut]
    slippage_protected: bool
    price: Decimal
    expected_output: Decimal
    min_acceptable_output: Decimal | None

    @classmethod
    def from_request(
        cls, contract_id: str, args: list[str], req: SwapRequest
    ) -> "PreparedSwapResponse":
        guard = req.guard
        return cls(
            contract_id=contract_id,
            function_name=req.direction.value,
            function_args=args,
            guard_mode=guard.mode if guard else GuardMode.ALLOW,
            guard_conditions=[GuardConditionOut.from_domain(c) for c in guard.conditions]
            if guard
            else [],
            slippage_protected=req.slippage_protected,
            price=req.current_price_at_submit,
            expected_output=req.expected_output,
            min_acceptable_output=req.min_acceptable_output,
        )


class SubmittedSwapRequest(BaseModel):
    wallet_address: str = Field(..., min_length=1)
    direction: SwapDirection
    amount: Decimal
    transaction_id: str = Field(..., min_length=1)


class PendingTransactionResponse(BaseModel):
    transaction_id: str
    direction: SwapDirection
    input_amount: Decimal
    submitted_at: datetime
    status: TxStatus

    @classmethod
    def from_domain(cls, p: PendingTransaction) -> "PendingTransactionResponse":
        return cls(
            transaction_id=p.transaction_id,
            direction=p.direction,
            input_amount=p.input_amount,
            submitted_at=p.submitted_at,
            status=p.status,
        )


class ConfirmSwapResponse(BaseModel):
    transaction_id: str
    status: TxStatus
    ledger_status: str | None
    waited_seconds: float
    reconciliation: ReconcileResultResponse | None = None
