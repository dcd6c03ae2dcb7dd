"""UTC datetime utilities."""

import logging
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def window_start(window_days: int | None) -> datetime | None:
    """Start of a trailing N-day window, or None for all time."""
    if window_days is None:
        return None
    return utc_now() - timedelta(days=window_days)


def parse_block_time(iso: str | None, epoch_seconds: int | None = None) -> datetime | None:
    """Ledger block time -> aware datetime.

    Prefers the ISO field (``block_time_iso``); falls back to unix seconds
    (``burn_block_time``). Returns None when neither is present or parseable.
    """
    if iso:
        try:
            parsed = datetime.fromisoformat(iso.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Unparseable block time %r", iso)
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if epoch_seconds:
        try:
            return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Block time out of range: %r", epoch_seconds)
    return None
