"""Global enums — string values must match DB CHECK constraints exactly."""

from enum import Enum


class SwapDirection(str, Enum):
    """Contract function names on the DEX; buy = sBTC in, sell = token in."""
    BUY = "buy"
    SELL = "sell"


class TxStatus(str, Enum):
    """Status of a submitted transaction as tracked locally."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    DUPLICATE = "duplicate"


class SwapState(str, Enum):
    BUILT = "BUILT"
    SUBMITTED = "SUBMITTED"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    DUPLICATE_DETECTED = "DUPLICATE_DETECTED"


class GuardMode(str, Enum):
    """Post-condition mode sent with a contract call."""
    ALLOW = "allow"
    DENY = "deny"


class GuardComparator(str, Enum):
    EQ = "eq"
    GTE = "gte"


class AmountConfidence(str, Enum):
    AUTHORITATIVE = "authoritative"
    ESTIMATED = "estimated"


class LeaderboardView(str, Enum):
    PERFORMERS = "performers"
    HOLDERS = "holders"


class CandleInterval(str, Enum):
    """Candlestick bucket widths."""
    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    FIFTEEN_MINUTES = "15m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"

    @property
    def seconds(self) -> int:
        return _CANDLE_SECONDS[self.value]


_CANDLE_SECONDS = {"1m": 60, "5m": 300, "15m": 900, "1h": 3600, "4h": 14_400, "1d": 86_400}


class LedgerTxStatus(str, Enum):
    """Raw ``tx_status`` values reported by the ledger API."""
    PENDING = "pending"
    SUCCESS = "success"
    ABORT_BY_RESPONSE = "abort_by_response"
    ABORT_BY_POST_CONDITION = "abort_by_post_condition"
    FAILED = "failed"
    DROPPED_REPLACE_BY_FEE = "dropped_replace_by_fee"
    DROPPED_STALE_GARBAGE_COLLECT = "dropped_stale_garbage_collect"
