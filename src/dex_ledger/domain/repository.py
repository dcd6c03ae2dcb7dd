# src/dex_ledger/domain/repository.py
"""Ledger client Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the Hiro HTTP implementation.
"""

from typing import Any, Protocol

from src.dex_ledger.domain.models import LedgerTransaction


class LedgerClientProtocol(Protocol):
    async def read_only_call(
        self,
        contract_address: str,
        contract_name: str,
        function_name: str,
        args: list[str] | None = None,
    ) -> Any: ...

    async def get_transaction(self, tx_id: str) -> LedgerTransaction: ...

    async def list_contract_transactions(
        self, contract_id: str, limit: int = 50
    ) -> list[LedgerTransaction]: ...

    async def get_fungible_balance(self, address: str, asset_identifier: str) -> int: ...

    async def health_check(self) -> bool: ...
