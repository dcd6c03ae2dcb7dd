"""Domain models for dex_ledger — normalised view of ledger API payloads."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.dex_common.enums import SwapDirection


@dataclass(frozen=True)
class LedgerEvent:
    """One transaction event, flattened across the API's event formats.

    Token transfers fill asset_identifier/sender/recipient/amount;
    contract print logs fill log_repr.
    """

    event_type: str
    asset_identifier: str | None = None
    sender: str | None = None
    recipient: str | None = None
    amount: int | None = None
    contract_id: str | None = None
    log_repr: str | None = None

    @property
    def is_ft_transfer(self) -> bool:
        return self.event_type == "ft_transfer_event"

    @property
    def is_contract_log(self) -> bool:
        return self.event_type == "smart_contract_log"


@dataclass
class LedgerTransaction:
    tx_id: str
    tx_status: str
    tx_type: str
    sender_address: str
    fee: int
    block_height: int | None
    block_time: datetime | None
    contract_id: str | None
    function_name: str | None
    function_args: list[str] = field(default_factory=list)  # Clarity reprs, e.g. "u1000"
    result_repr: str | None = None
    post_condition_mode: str | None = None
    events: list[LedgerEvent] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.tx_status == "success"

    @property
    def is_pending(self) -> bool:
        return self.tx_status == "pending"


@dataclass(frozen=True)
class AssetIds:
    """Asset identifiers ("<contract_id>::<asset_name>") for one DEX pair."""

    dex_contract_id: str
    sbtc: str
    token: str

    def input_asset(self, direction: SwapDirection) -> str:
        return self.sbtc if direction is SwapDirection.BUY else self.token

    def output_asset(self, direction: SwapDirection) -> str:
        return self.token if direction is SwapDirection.BUY else self.sbtc

    def is_sbtc(self, asset_identifier: str | None) -> bool:
        if not asset_identifier:
            return False
        contract = asset_identifier.split("::", 1)[0]
        if contract == self.sbtc.split("::", 1)[0]:
            return True
        return contract.endswith(".sbtc-token")
