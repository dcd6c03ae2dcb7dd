"""Swap lifecycle events for observers (notification bots, UI push, etc.)."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal

from src.dex_common.enums import SwapDirection

logger = logging.getLogger(__name__)

TRANSACTION_PENDING = "transactionPending"
TRANSACTION_SUCCESSFUL = "transactionSuccessful"
TRANSACTION_FAILED = "transactionFailed"


@dataclass(frozen=True)
class SwapEvent:
    name: str
    direction: SwapDirection
    amount: Decimal
    transaction_id: str | None = None
    error: str | None = None


Observer = Callable[[SwapEvent], Awaitable[None]]


class SwapEventNotifier:
    def __init__(self) -> None:
        self._observers: list[Observer] = []

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    async def publish(self, event: SwapEvent) -> None:
        logger.info(
            "%s direction=%s amount=%s tx=%s",
            event.name, event.direction.value, event.amount, event.transaction_id,
        )
        for observer in self._observers:
            try:
                await observer(event)
            except Exception:
                # observers never change the outcome
                logger.exception("Swap observer failed for %s", event.name)
