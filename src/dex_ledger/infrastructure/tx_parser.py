# src/dex_ledger/infrastructure/tx_parser.py
"""Ledger API JSON -> LedgerTransaction.

Two event shapes reach us and both are normalised to LedgerEvent:

  extended API:   {"event_type": "fungible_token_asset",
                   "asset": {"asset_event_type": "transfer", "asset_id", "sender",
                             "recipient", "amount"}}
                  {"event_type": "smart_contract_log",
                   "contract_log": {"contract_id", "value": {"repr"}}}
  event stream:   {"event_type": "ft_transfer_event",
                   "event_data": {"asset_identifier", "sender", "recipient", "amount"}}
                  {"event_type": "smart_contract_log",
                   "event_data": {"contract_identifier", "value": {"repr"} | "<repr>"}}

Stored raw payloads are re-parsed with the same function during backfill.
"""

import logging
from typing import Any

from src.dex_common.datetime_utils import parse_block_time
from src.dex_ledger.domain.models import LedgerEvent, LedgerTransaction

logger = logging.getLogger(__name__)


def parse_transaction(payload: dict[str, Any]) -> LedgerTransaction:
    call = payload.get("contract_call") or {}
    result = payload.get("tx_result") or {}
    return LedgerTransaction(
        tx_id=payload["tx_id"],
        tx_status=payload.get("tx_status", "pending"),
        tx_type=payload.get("tx_type", ""),
        sender_address=payload.get("sender_address", ""),
        fee=_to_int(payload.get("fee_rate")) or 0,
        block_height=_to_int(payload.get("block_height")),
        block_time=parse_block_time(
            payload.get("block_time_iso"), _to_int(payload.get("burn_block_time"))
        ),
        contract_id=call.get("contract_id"),
        function_name=call.get("function_name"),
        function_args=[a.get("repr", "") for a in call.get("function_args") or []],
        result_repr=result.get("repr"),
        post_condition_mode=payload.get("post_condition_mode"),
        events=[ev for ev in (parse_event(e) for e in payload.get("events") or []) if ev],
        raw=payload,
    )


def parse_event(event: dict[str, Any]) -> LedgerEvent | None:
    event_type = event.get("event_type", "")

    if event_type == "ft_transfer_event":
        data = event.get("event_data") or {}
        return LedgerEvent(
            event_type="ft_transfer_event",
            asset_identifier=data.get("asset_identifier"),
            sender=data.get("sender"),
            recipient=data.get("recipient"),
            amount=_to_int(data.get("amount")),
        )

    if event_type == "fungible_token_asset":
        asset = event.get("asset") or {}
        if asset.get("asset_event_type") != "transfer":
            # mint/burn carry no sender->recipient movement we reconcile on
            return LedgerEvent(event_type=f"ft_{asset.get('asset_event_type', 'unknown')}_event")
        return LedgerEvent(
            event_type="ft_transfer_event",
            asset_identifier=asset.get("asset_id"),
            sender=asset.get("sender"),
            recipient=asset.get("recipient"),
            amount=_to_int(asset.get("amount")),
        )

    if event_type == "smart_contract_log":
        log = event.get("contract_log") or event.get("event_data") or {}
        value = log.get("value")
        repr_ = value.get("repr") if isinstance(value, dict) else value
        return LedgerEvent(
            event_type="smart_contract_log",
            contract_id=log.get("contract_id") or log.get("contract_identifier"),
            log_repr=repr_ if isinstance(repr_, str) else None,
        )

    if not event_type:
        logger.debug("Skipping event without event_type: %s", event)
        return None
    return LedgerEvent(event_type=event_type)


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug("Non-integer ledger field: %r", value)
        return None
