# src/dex_swap/domain/pool_source.py
"""Capabilities the orchestrator needs from a pool + ledger backend.

One orchestrator runs against any PoolSource; testnet/mainnet or
API-backed vs direct-read variants differ only in the implementation.
"""

from decimal import Decimal
from typing import Protocol

from src.dex_common.enums import GuardMode, SwapDirection
from src.dex_ledger.domain.models import LedgerTransaction
from src.dex_pricing.domain.models import PoolState
from src.dex_swap.domain.models import SwapRequest
from src.dex_swap.domain.slippage import GuardCondition


class ContractCaller(Protocol):
    """Wallet that signs and broadcasts a contract call.

    Raises SubmissionRejectedError when the user cancels or the wallet is
    not connected; NetworkUnavailableError (or any OSError) on connectivity
    failure. Returns the transaction id.
    """

    async def call_contract(
        self,
        contract_id: str,
        function_name: str,
        function_args: list[str],
        guard_conditions: list[GuardCondition],
        guard_mode: GuardMode,
    ) -> str: ...


class PoolSource(Protocol):
    async def read_pool(self) -> PoolState: ...

    async def reported_balance(self, wallet_address: str, direction: SwapDirection) -> Decimal:
        """Balance of the input asset: sats for buy, whole tokens for sell."""
        ...

    async def submit(self, request: SwapRequest) -> str: ...

    async def poll_status(self, transaction_id: str) -> LedgerTransaction: ...

    async def health_check(self) -> bool: ...
