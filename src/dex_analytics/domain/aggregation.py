# src/dex_analytics/domain/aggregation.py
"""Pure aggregation over reconciled trade records.

Records with a NULL amount contribute nothing to that amount's total but
still count as a trade. Estimated amounts are summed and counted separately
so callers can see how much of a position rests on low-confidence data.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from src.dex_analytics.domain.models import AccountPosition, Candle, LeaderboardEntry
from src.dex_common.enums import CandleInterval, LeaderboardView, SwapDirection
from src.dex_common.units import base_to_tokens
from src.dex_reconcile.domain.models import TradeRecord

LEADERBOARD_SIZE = 10


def position_for(wallet_address: str, records: Iterable[TradeRecord]) -> AccountPosition:
    bought = sold = Decimal(0)
    spent = received = 0
    first_trade_at: datetime | None = None
    count = estimated = 0

    for r in records:
        if r.wallet_address != wallet_address:
            continue
        count += 1
        if r.is_estimated:
            estimated += 1
        if r.created_at is not None and (first_trade_at is None or r.created_at < first_trade_at):
            first_trade_at = r.created_at
        tokens = _whole_tokens(r)
        sats = abs(r.sats_traded) if r.sats_traded is not None else 0
        if r.direction == SwapDirection.BUY:
            bought += tokens
            spent += sats
        elif r.direction == SwapDirection.SELL:
            sold += tokens
            received += sats

    return AccountPosition(
        wallet_address=wallet_address,
        total_bought=bought,
        total_sold=sold,
        total_spent=spent,
        total_received=received,
        first_trade_at=first_trade_at,
        trade_count=count,
        estimated_trades=estimated,
    )


def positions(records: Iterable[TradeRecord]) -> list[AccountPosition]:
    """One position per wallet, in order of first appearance."""
    by_wallet: dict[str, list[TradeRecord]] = {}
    for r in records:
        by_wallet.setdefault(r.wallet_address, []).append(r)
    return [position_for(wallet, rows) for wallet, rows in by_wallet.items()]


def leaderboard(
    view: LeaderboardView,
    account_positions: Iterable[AccountPosition],
    limit: int = LEADERBOARD_SIZE,
) -> list[LeaderboardEntry]:
    scored: list[tuple[Decimal, AccountPosition]] = []
    for p in account_positions:
        value = Decimal(p.realized_pnl) if view == LeaderboardView.PERFORMERS else p.net_tokens
        if value > 0:
            scored.append((value, p))

    # sorted() is stable; accounts without a block time sort last among equals
    scored.sort(key=lambda item: (-item[0], _first_trade_key(item[1].first_trade_at)))
    return [
        LeaderboardEntry(
            rank=i + 1,
            wallet_address=p.wallet_address,
            value=value,
            first_trade_at=p.first_trade_at,
        )
        for i, (value, p) in enumerate(scored[:limit])
    ]


def _first_trade_key(ts: datetime | None) -> tuple[int, float]:
    if ts is None:
        return (1, 0.0)
    return (0, ts.timestamp())


def candlesticks(records: Iterable[TradeRecord], interval: CandleInterval) -> list[Candle]:
    """OHLC candles of execution price, oldest bucket first.

    A bucket starts at floor(block_time / width) * width. Records without a
    block time or an execution price can't be placed and are skipped; empty
    buckets produce no candle.
    """
    width = interval.seconds
    priced = [r for r in records if r.created_at is not None and r.execution_price is not None]
    priced.sort(key=lambda r: (r.created_at, r.block_height or 0, r.transaction_id))

    buckets: dict[int, list[TradeRecord]] = {}
    for r in priced:
        start = int(r.created_at.timestamp()) // width * width
        buckets.setdefault(start, []).append(r)

    candles = []
    for start in sorted(buckets):
        rows = buckets[start]
        prices = [r.execution_price for r in rows]
        candles.append(
            Candle(
                bucket_start=datetime.fromtimestamp(start, tz=timezone.utc),
                open=prices[0],
                high=max(prices),
                low=min(prices),
                close=prices[-1],
                volume=sum((_whole_tokens(r) for r in rows), Decimal(0)),
                sats_volume=sum(abs(r.sats_traded) for r in rows if r.sats_traded is not None),
                trade_count=len(rows),
                estimated_trades=sum(1 for r in rows if r.is_estimated),
            )
        )
    return candles


def _whole_tokens(r: TradeRecord) -> Decimal:
    return base_to_tokens(abs(r.tokens_traded)) if r.tokens_traded is not None else Decimal(0)
