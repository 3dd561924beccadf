"""
Position chain manager.

A position is the sequence of trades produced by rolling: each roll
closes the current trade and opens a successor that carries the same
position id and points back at its parent. This module owns that
linkage and the roll operation itself.
"""

import logging
from dataclasses import dataclass
from datetime import date

from src.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.core.logging_service import log_trade_event
from src.db.repositories.base import TradeRepository, build_trade, utc_now
from src.schemas.trade import RollRequest, Trade, TradeCreate, TradeStatus
from src.services.strategy_catalog import AdjustmentType
from src.services.trade_service import validate_trade_terms
from src.services.valuation import EXPIRATION_FIELDS_RESET, realized_pnl_for

logger = logging.getLogger(__name__)


@dataclass
class RollResult:
    """The closed parent and the trade that replaced it."""
    closed_parent: Trade
    new_trade: Trade


def ensure_position_id(trade: Trade) -> str:
    """
    Returns the trade's position id, deriving one for trades recorded
    before chains existed. The derived id depends only on the trade's
    ticker and creation time, so repeated calls agree.
    """
    if trade.position_id:
        return trade.position_id
    epoch_ms = int(trade.created_at.timestamp() * 1000)
    return f"pos-{trade.ticker.lower()}-{epoch_ms}"


class PositionChainManager:
    """
    Rolls open trades and answers chain queries.
    """

    def __init__(self, trades: TradeRepository):
        self.trades = trades

    async def roll_position(self, parent_id: str, user_id: str, request: RollRequest) -> RollResult:
        """
        Close an open trade at the given exit and open its successor.

        The successor is built and validated before anything is stored;
        closing the parent and inserting the successor then happen in one
        repository call that re-checks the parent is still open.

        Args:
            parent_id: Trade being rolled
            user_id: Caller, who must own the parent
            request: Parent exit plus the successor's terms

        Returns:
            RollResult with the closed parent and the new trade

        Raises:
            NotFoundError: Unknown parent
            AuthorizationError: Caller does not own the parent
            ValidationError: Parent not open, or invalid successor terms
            ConflictError: Another roll closed the parent first
        """
        parent = await self.trades.get_trade(parent_id)
        if parent is None:
            raise NotFoundError("Parent trade not found")
        if parent.user_id != user_id:
            raise AuthorizationError("Not authorized to roll this trade")
        if parent.status != TradeStatus.OPEN:
            raise ValidationError("Can only roll open trades")

        position_id = ensure_position_id(parent)
        exit_date = request.parent_exit_date or date.today()

        terms = request.model_dump(exclude={"parent_exit_price", "parent_exit_date"})
        successor_data = TradeCreate(
            **terms,
            shared=parent.shared,
            position_id=position_id,
            adjustment_type=AdjustmentType.ROLL,
            parent_trade_id=parent.id,
        )
        validate_trade_terms(successor_data)
        successor = build_trade(successor_data, user_id=user_id)

        realized = realized_pnl_for(
            TradeStatus.CLOSED,
            parent.entry_price,
            request.parent_exit_price,
            parent.quantity,
            parent.strategy,
        )
        parent_changes = {
            "status": TradeStatus.CLOSED,
            "exit_price": request.parent_exit_price,
            "exit_date": exit_date,
            "pnl": realized.pnl,
            "pnl_percent": realized.pnl_percent,
            "position_id": position_id,
            "edited_at": utc_now(),
            **EXPIRATION_FIELDS_RESET,
        }

        closed, created = await self.trades.commit_roll(parent.id, parent_changes, successor)
        log_trade_event(
            "position_rolled",
            trade_id=created.id,
            parent_trade_id=parent.id,
            position_id=position_id,
            user_id=user_id,
        )
        return RollResult(closed_parent=closed, new_trade=created)

    async def get_position_chain(self, position_id: str) -> list[Trade]:
        """Trades sharing a position id, oldest first."""
        return await self.trades.get_position_trades(position_id)

    async def get_open_positions_for_user(self, user_id: str) -> list[Trade]:
        """The user's OPEN trades, newest first; the candidates for a roll."""
        return await self.trades.get_open_trades_for_user(user_id)
