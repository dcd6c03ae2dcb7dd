"""Status tie-break between a direct ledger lookup and the reconciled feed."""

from src.dex_common.enums import TxStatus
from src.dex_swap.domain.state_machine import ledger_terminal_status


def resolve_status(direct: str | None, feed: str | None) -> TxStatus:
    """The direct lookup wins whenever it answered; the feed only fills gaps.

    ``direct`` is a raw ledger tx_status; ``feed`` is the status implied by
    the trade store ("success" when a record exists).
    """
    if direct is not None:
        return ledger_terminal_status(direct) or TxStatus.PENDING
    if feed is not None:
        return ledger_terminal_status(feed) or TxStatus.PENDING
    return TxStatus.PENDING
