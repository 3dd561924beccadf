"""
Analytics Service - aggregates journal statistics over a trade set.
Provides trade counts, win rate, total realized P&L and best/worst trades.
"""

import logging
from decimal import Decimal
from typing import Iterable

from src.schemas.dashboard import UserStats
from src.schemas.trade import Trade, TradeStatus

logger = logging.getLogger(__name__)


def summarize_trades(trades: Iterable[Trade]) -> UserStats:
    """
    Calculate journal statistics.

    Only CLOSED trades count towards win rate, total P&L and best/worst
    trade. A closed trade without a realized P&L counts as zero in the
    total and is skipped for best/worst.

    Args:
        trades: Trades to aggregate (already scoped to a user if needed)

    Returns:
        UserStats; win_rate is a percentage, 0 when nothing is closed
    """
    trades = list(trades)
    closed = [t for t in trades if t.status == TradeStatus.CLOSED]
    winners = [t for t in closed if t.pnl is not None and t.pnl > 0]
    total_pnl = sum((t.pnl or Decimal("0") for t in closed), Decimal("0"))

    best: Trade | None = None
    worst: Trade | None = None
    for trade in closed:
        if trade.pnl is None:
            continue
        if best is None or trade.pnl > best.pnl:
            best = trade
        if worst is None or trade.pnl < worst.pnl:
            worst = trade

    win_rate = (
        Decimal(len(winners)) / Decimal(len(closed)) * 100
        if closed else Decimal("0")
    )

    return UserStats(
        total_trades=len(trades),
        win_rate=win_rate,
        total_pnl=total_pnl,
        best_trade=best,
        worst_trade=worst,
        open_trades=sum(1 for t in trades if t.status == TradeStatus.OPEN),
        closed_trades=len(closed),
    )
