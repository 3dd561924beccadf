"""
Dashboard schemas for journal statistics.
"""

from decimal import Decimal
from pydantic import BaseModel

from src.schemas.trade import Trade


class UserStats(BaseModel):
    """
    Aggregated statistics over a (optionally user-scoped) trade set.
    """
    total_trades: int
    win_rate: Decimal
    total_pnl: Decimal
    best_trade: Trade | None = None
    worst_trade: Trade | None = None
    open_trades: int
    closed_trades: int
