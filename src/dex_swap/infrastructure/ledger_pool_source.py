# src/dex_swap/infrastructure/ledger_pool_source.py
"""PoolSource backed by the ledger API and an injected wallet ContractCaller."""

import logging
from decimal import Decimal

import httpx

from src.dex_common.enums import SwapDirection
from src.dex_common.errors import InternalError, NetworkUnavailableError
from src.dex_common.units import base_to_tokens
from src.dex_ledger.domain.clarity import encode_uint
from src.dex_ledger.domain.models import AssetIds, LedgerTransaction
from src.dex_ledger.domain.repository import LedgerClientProtocol
from src.dex_pricing.domain.models import PoolState
from src.dex_pricing.infrastructure.pool_reader import PoolReader
from src.dex_swap.domain.models import SwapRequest
from src.dex_swap.domain.pool_source import ContractCaller
from src.dex_swap.domain.slippage import input_base_units

logger = logging.getLogger(__name__)


class LedgerPoolSource:
    def __init__(
        self,
        ledger: LedgerClientProtocol,
        reader: PoolReader,
        assets: AssetIds,
        caller: ContractCaller | None = None,
    ) -> None:
        self._ledger = ledger
        self._reader = reader
        self._assets = assets
        self._caller = caller

    async def read_pool(self) -> PoolState:
        return await self._reader.read_fresh()

    async def reported_balance(self, wallet_address: str, direction: SwapDirection) -> Decimal:
        asset = self._assets.input_asset(direction)
        base = await self._ledger.get_fungible_balance(wallet_address, asset)
        if direction is SwapDirection.BUY:
            return Decimal(base)
        return base_to_tokens(base)

    def contract_args(self, request: SwapRequest) -> list[str]:
        return [encode_uint(input_base_units(request.direction, request.input_amount))]

    async def submit(self, request: SwapRequest) -> str:
        if self._caller is None:
            raise InternalError("No wallet connected to submit the contract call")
        if request.guard is None:
            raise InternalError("Swap request built without a guard plan")
        try:
            return await self._caller.call_contract(
                self._assets.dex_contract_id,
                request.direction.value,
                self.contract_args(request),
                request.guard.conditions,
                request.guard.mode,
            )
        except httpx.TransportError as exc:
            raise NetworkUnavailableError(f"Wallet broadcast failed: {exc}") from exc

    async def poll_status(self, transaction_id: str) -> LedgerTransaction:
        return await self._ledger.get_transaction(transaction_id)

    async def health_check(self) -> bool:
        return await self._ledger.health_check()
