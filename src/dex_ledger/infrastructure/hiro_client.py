# src/dex_ledger/infrastructure/hiro_client.py
"""Hiro-compatible ledger API client over httpx.AsyncClient.

Endpoints used:
  POST /v2/contracts/call-read/{address}/{name}/{function}   read-only call
  GET  /extended/v1/tx/{tx_id}                               tx lookup
  GET  /extended/v1/contract/{contract_id}/events            contract history
  GET  /extended/v1/address/{principal}/balances             FT balances
  GET  /v2/info                                              health check (5s)
"""

import asyncio
import logging
from typing import Any

import httpx

from config.settings import settings
from src.dex_common.errors import (
    LedgerRequestError,
    NetworkUnavailableError,
    TransactionNotFoundError,
)
from src.dex_ledger.domain.clarity import decode_hex
from src.dex_ledger.domain.models import LedgerTransaction
from src.dex_ledger.infrastructure.tx_parser import parse_transaction

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT_SECONDS = 5.0


class HiroLedgerClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        key = api_key if api_key is not None else settings.LEDGER_API_KEY
        if key:
            headers["x-api-key"] = key
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.LEDGER_API_URL).rstrip("/"),
            headers=headers,
            timeout=timeout or settings.LEDGER_REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def read_only_call(
        self,
        contract_address: str,
        contract_name: str,
        function_name: str,
        args: list[str] | None = None,
    ) -> Any:
        path = f"/v2/contracts/call-read/{contract_address}/{contract_name}/{function_name}"
        body = await self._request(
            "POST",
            path,
            json={"sender": contract_address, "arguments": args or []},
        )
        if not body.get("okay"):
            logger.warning(
                "Read-only call failed | fn=%s cause=%s", function_name, body.get("cause")
            )
            raise LedgerRequestError(400, path)
        return decode_hex(body["result"])

    async def get_transaction(self, tx_id: str) -> LedgerTransaction:
        tx_id = tx_id if tx_id.startswith("0x") else f"0x{tx_id}"
        body = await self._request("GET", f"/extended/v1/tx/{tx_id}", not_found_id=tx_id)
        return parse_transaction(body)

    async def list_contract_transactions(
        self, contract_id: str, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Recent transactions that emitted events from the contract, newest first."""
        body = await self._request(
            "GET",
            f"/extended/v1/contract/{contract_id}/events",
            params={"limit": limit, "unanchored": "true"},
        )
        tx_ids = list(dict.fromkeys(e["tx_id"] for e in body.get("results", []) if e.get("tx_id")))
        if not tx_ids:
            return []
        return list(await asyncio.gather(*(self.get_transaction(t) for t in tx_ids)))

    async def get_fungible_balance(self, address: str, asset_identifier: str) -> int:
        body = await self._request("GET", f"/extended/v1/address/{address}/balances")
        entry = (body.get("fungible_tokens") or {}).get(asset_identifier)
        return int(entry["balance"]) if entry else 0

    async def health_check(self) -> bool:
        try:
            resp = await self._client.get("/v2/info", timeout=HEALTH_CHECK_TIMEOUT_SECONDS)
        except httpx.HTTPError as exc:
            logger.warning("Ledger health check failed | error=%s", exc)
            return False
        if resp.status_code != 200:
            logger.warning("Ledger health check failed | status=%d", resp.status_code)
            return False
        return True

    async def _request(
        self,
        method: str,
        path: str,
        not_found_id: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.error("Ledger request error | %s %s error=%s", method, path, exc)
            raise NetworkUnavailableError(f"Ledger unreachable: {exc}") from exc
        if resp.status_code == 404 and not_found_id is not None:
            raise TransactionNotFoundError(not_found_id)
        if resp.status_code >= 400:
            logger.error("Ledger API error | %s %s status=%d", method, path, resp.status_code)
            raise LedgerRequestError(resp.status_code, path)
        try:
            return resp.json()
        except ValueError as exc:
            logger.error(
                "Ledger API non-JSON body | %s %s status=%d", method, path, resp.status_code
            )
            raise LedgerRequestError(resp.status_code, path) from exc


_ledger_client: HiroLedgerClient | None = None


def get_ledger_client() -> HiroLedgerClient:
    global _ledger_client  # noqa: PLW0603
    if _ledger_client is None:
        _ledger_client = HiroLedgerClient()
    return _ledger_client


async def close_ledger_client() -> None:
    global _ledger_client  # noqa: PLW0603
    if _ledger_client is not None:
        await _ledger_client.aclose()
        _ledger_client = None
