# tests/unit/test_aggregation.py
"""P&L and leaderboard aggregation over trade records."""
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from src.dex_analytics.domain.aggregation import candlesticks, leaderboard, position_for, positions
from src.dex_analytics.domain.models import AccountPosition, Holdings
from src.dex_common.enums import CandleInterval, LeaderboardView
from src.dex_reconcile.domain.models import TradeRecord

T0 = datetime(2026, 10, 1, tzinfo=UTC)


def _trade(
    wallet: str,
    direction: str,
    sats: int | None,
    tokens: int | None,
    minutes: int = 0,
    tx: str | None = None,
    confidence: str = "authoritative",
) -> TradeRecord:
    return TradeRecord(
        transaction_id=tx or f"{wallet}-{direction}-{minutes}",
        wallet_address=wallet,
        direction=direction,
        sats_traded=sats,
        tokens_traded=tokens * 10**8 if tokens is not None else None,
        execution_price=None,
        amount_confidence=confidence,
        created_at=T0 + timedelta(minutes=minutes),
    )


RECORDS = [
    _trade("A", "buy", 1000, 490, minutes=0),
    _trade("B", "buy", 400, 200, minutes=1),
    _trade("A", "sell", 500, 200, minutes=2),
    _trade("B", "sell", 1000, 200, minutes=3),
    _trade("C", "sell", 300, 100, minutes=4),
]


class TestPosition:
    def test_wallet_a(self) -> None:
        p = position_for("A", RECORDS)
        assert p.total_bought == Decimal(490)
        assert p.total_sold == Decimal(200)
        assert p.total_spent == 1000
        assert p.total_received == 500
        assert p.realized_pnl == -500
        assert p.net_tokens == Decimal(290)
        assert p.trade_count == 2
        assert p.first_trade_at == T0
        assert p.avg_cost == Decimal(1000) / Decimal(490)

    def test_wallet_c_has_no_cost_basis(self) -> None:
        p = position_for("C", RECORDS)
        assert p.realized_pnl == 300
        assert p.net_tokens == Decimal(-100)
        assert p.avg_cost is None

    def test_unknown_wallet(self) -> None:
        p = position_for("Z", RECORDS)
        assert p.trade_count == 0
        assert p.realized_pnl == 0
        assert p.first_trade_at is None

    def test_null_amounts_count_but_add_nothing(self) -> None:
        records = [
            _trade("A", "buy", 1000, None, minutes=0),
            _trade("A", "sell", None, 100, minutes=1, confidence="estimated"),
        ]
        p = position_for("A", records)
        assert p.trade_count == 2
        assert p.estimated_trades == 1
        assert p.total_spent == 1000
        assert p.total_bought == 0
        assert p.total_received == 0
        assert p.total_sold == Decimal(100)

    def test_positions_in_first_appearance_order(self) -> None:
        assert [p.wallet_address for p in positions(RECORDS)] == ["A", "B", "C"]


class TestLeaderboard:
    def test_performers(self) -> None:
        entries = leaderboard(LeaderboardView.PERFORMERS, positions(RECORDS))
        assert [(e.rank, e.wallet_address, e.value) for e in entries] == [
            (1, "B", Decimal(600)),
            (2, "C", Decimal(300)),
        ]

    def test_holders_exclude_non_positive(self) -> None:
        entries = leaderboard(LeaderboardView.HOLDERS, positions(RECORDS))
        assert [(e.wallet_address, e.value) for e in entries] == [("A", Decimal(290))]

    def test_ties_break_on_earliest_first_trade(self) -> None:
        records = [
            _trade("late", "sell", 100, 1, minutes=10),
            _trade("early", "sell", 100, 1, minutes=5),
            _trade("first", "sell", 100, 1),
        ]
        account_positions = positions(records)
        undated = AccountPosition("undated", Decimal(0), Decimal(1), 0, 100, None, 1)
        entries = leaderboard(LeaderboardView.PERFORMERS, [undated, *account_positions])
        assert [e.wallet_address for e in entries] == ["first", "early", "late", "undated"]

    def test_limited_to_ten(self) -> None:
        records = [_trade(f"W{i:02d}", "sell", 100 + i, 1, minutes=i) for i in range(15)]
        entries = leaderboard(LeaderboardView.PERFORMERS, positions(records))
        assert len(entries) == 10
        assert entries[0].wallet_address == "W14"
        assert entries[-1].rank == 10

    def test_empty(self) -> None:
        assert leaderboard(LeaderboardView.HOLDERS, []) == []


class TestHoldings:
    def test_reported_wins(self) -> None:
        h = Holdings("A", derived_tokens=Decimal(290), reported_tokens=Decimal(300))
        assert h.effective_tokens == Decimal(300)
        assert h.source == "reported"

    def test_derived_when_unreported(self) -> None:
        h = Holdings("A", derived_tokens=Decimal(290), reported_tokens=None)
        assert h.effective_tokens == Decimal(290)
        assert h.source == "derived"


def _priced(
    tx: str,
    price: str,
    tokens: int,
    sats: int,
    minutes: int | None,
    confidence: str = "authoritative",
) -> TradeRecord:
    return TradeRecord(
        transaction_id=tx,
        wallet_address="A",
        direction="buy",
        sats_traded=sats,
        tokens_traded=tokens * 10**8,
        execution_price=Decimal(price),
        amount_confidence=confidence,
        created_at=T0 + timedelta(minutes=minutes) if minutes is not None else None,
    )


CANDLE_RECORDS = [
    _priced("0x1", "2.0", 10, 20, minutes=0),
    _priced("0x3", "2.5", 4, 10, minutes=2),
    _priced("0x2", "1.5", 2, 3, minutes=1),
    _priced("0x4", "3.0", 1, 3, minutes=4),
    _priced("0x5", "2.2", 5, 11, minutes=7, confidence="estimated"),
]


class TestCandlesticks:
    def test_five_minute_buckets(self) -> None:
        first, second = candlesticks(CANDLE_RECORDS, CandleInterval.FIVE_MINUTES)

        assert first.bucket_start == T0
        assert (first.open, first.high, first.low, first.close) == (
            Decimal("2.0"), Decimal("3.0"), Decimal("1.5"), Decimal("3.0"),
        )
        assert first.volume == Decimal(17)
        assert first.sats_volume == 36
        assert first.trade_count == 4
        assert first.estimated_trades == 0

        assert second.bucket_start == T0 + timedelta(minutes=5)
        assert second.open == second.close == Decimal("2.2")
        assert second.trade_count == 1
        assert second.estimated_trades == 1

    def test_wider_interval_merges_buckets(self) -> None:
        (candle,) = candlesticks(CANDLE_RECORDS, CandleInterval.ONE_HOUR)
        assert candle.open == Decimal("2.0")
        assert candle.close == Decimal("2.2")
        assert candle.trade_count == 5
        assert candle.volume == Decimal(22)

    def test_unplaceable_records_skipped(self) -> None:
        unpriced = _trade("A", "buy", 1000, 490, minutes=1)
        undated = _priced("0x9", "9.9", 1, 10, minutes=None)
        records = [CANDLE_RECORDS[0], unpriced, undated]
        (candle,) = candlesticks(records, CandleInterval.ONE_MINUTE)
        assert candle.trade_count == 1
        assert candle.high == Decimal("2.0")

    def test_no_trades_no_candles(self) -> None:
        assert candlesticks([], CandleInterval.ONE_DAY) == []
