"""
Trade service.

Write rules for the journal: ownership checks, the exit-date rule for
closed option trades, P&L recomputation on every edit, social actions
(likes, shares, comments) and expiration valuation against live quotes.
"""

import logging
from datetime import date

from src.core.exceptions import AuthorizationError, NotFoundError, UpstreamUnavailableError, ValidationError
from src.core.logging_service import log_trade_event
from src.db.repositories.base import TradeRepository, build_trade, new_id, utc_now
from src.schemas.dashboard import UserStats
from src.schemas.trade import (
    Comment,
    CommentCreate,
    ExpirationBatchResult,
    FeedFilter,
    Trade,
    TradeCreate,
    TradeStatus,
    TradeTerms,
    TradeUpdate,
)
from src.services.quote_service import QuoteProvider
from src.services.strategy_catalog import Strategy
from src.services.valuation import (
    EXPIRATION_FIELDS_RESET,
    expiring_option_legs,
    realized_pnl_for,
    value_at_expiration,
)

logger = logging.getLogger(__name__)


def validate_trade_terms(terms: TradeTerms) -> None:
    """
    Business rules the request schema cannot express on its own.

    Raises:
        ValidationError: A closed option trade has no exit date
    """
    if (
        terms.status == TradeStatus.CLOSED
        and terms.strategy != Strategy.STOCK
        and terms.exit_date is None
    ):
        raise ValidationError("Exit date is required for closed options trades")


class TradeService:
    """
    Journal operations on top of a trade repository.
    The quote provider is only needed for expiration valuation.
    """

    def __init__(self, trades: TradeRepository, quotes: QuoteProvider | None = None):
        self.trades = trades
        self.quotes = quotes

    async def get_trade(self, trade_id: str) -> Trade:
        trade = await self.trades.get_trade(trade_id)
        if trade is None:
            raise NotFoundError("Trade not found", details={"trade_id": trade_id})
        return trade

    async def _get_owned_trade(self, trade_id: str, user_id: str, action: str) -> Trade:
        trade = await self.get_trade(trade_id)
        if trade.user_id != user_id:
            raise AuthorizationError(f"Not authorized to {action} this trade")
        return trade

    async def list_trades(self, feed_filter: FeedFilter = FeedFilter.ALL) -> list[Trade]:
        return await self.trades.list_trades(feed_filter)

    async def get_shared_trades(self, feed_filter: FeedFilter = FeedFilter.ALL) -> list[Trade]:
        return await self.trades.get_shared_trades(feed_filter)

    async def get_user_trades(self, user_id: str, feed_filter: FeedFilter = FeedFilter.ALL) -> list[Trade]:
        return await self.trades.get_user_trades(user_id, feed_filter)

    async def create_trade(self, user_id: str, data: TradeCreate) -> Trade:
        """
        Record a new trade owned by user_id.

        Raises:
            ValidationError: A closed option trade has no exit date
        """
        validate_trade_terms(data)
        trade = await self.trades.create_trade(build_trade(data, user_id=user_id))
        log_trade_event(
            "trade_created",
            trade_id=trade.id,
            user_id=user_id,
            ticker=trade.ticker,
            strategy=trade.strategy.value,
            status=trade.status.value,
        )
        return trade

    async def update_trade(self, trade_id: str, user_id: str, data: TradeUpdate) -> Trade:
        """
        Replace a trade's terms.

        P&L is recomputed from the new terms and any stored expiration
        valuation is discarded. Visibility and chain linkage are kept.

        Raises:
            NotFoundError: Unknown trade
            AuthorizationError: Caller does not own the trade
            ValidationError: A closed option trade has no exit date
        """
        await self._get_owned_trade(trade_id, user_id, "edit")
        validate_trade_terms(data)

        realized = realized_pnl_for(
            data.status, data.entry_price, data.exit_price, data.quantity, data.strategy
        )
        changes = {
            **data.model_dump(),
            "pnl": realized.pnl,
            "pnl_percent": realized.pnl_percent,
            "edited_at": utc_now(),
            **EXPIRATION_FIELDS_RESET,
        }
        updated = await self.trades.update_trade(trade_id, changes)
        if updated is None:
            raise NotFoundError("Trade not found", details={"trade_id": trade_id})
        log_trade_event("trade_updated", trade_id=trade_id, user_id=user_id, status=updated.status.value)
        return updated

    async def delete_trade(self, trade_id: str, user_id: str) -> None:
        await self._get_owned_trade(trade_id, user_id, "delete")
        if not await self.trades.delete_trade(trade_id):
            raise NotFoundError("Trade not found", details={"trade_id": trade_id})
        log_trade_event("trade_deleted", trade_id=trade_id, user_id=user_id)

    async def toggle_share(self, trade_id: str, user_id: str) -> bool:
        await self._get_owned_trade(trade_id, user_id, "share")
        shared = await self.trades.toggle_share(trade_id)
        log_trade_event("trade_share_toggled", trade_id=trade_id, user_id=user_id, shared=shared)
        return shared

    async def toggle_like(self, trade_id: str, user_id: str) -> bool:
        """Any authenticated user may like any trade; returns the new membership."""
        await self.get_trade(trade_id)
        return await self.trades.toggle_like(trade_id, user_id)

    async def get_comments(self, trade_id: str) -> list[Comment]:
        await self.get_trade(trade_id)
        return await self.trades.get_comments(trade_id)

    async def add_comment(self, trade_id: str, user_id: str, data: CommentCreate) -> Comment:
        await self.get_trade(trade_id)
        comment = Comment(
            id=new_id(),
            trade_id=trade_id,
            user_id=user_id,
            content=data.content,
            created_at=utc_now(),
        )
        return await self.trades.create_comment(comment)

    async def calculate_expiration(self, trade_id: str) -> Trade:
        """
        Value a closed trade at expiration using the latest quote for its
        ticker and store the result.

        Raises:
            NotFoundError: Unknown trade
            ValidationError: Trade not closed, or no expiring option legs
            UpstreamUnavailableError: No quote available for the ticker
        """
        trade = await self.get_trade(trade_id)
        # Reject ineligible trades before spending a quote request
        expiring_option_legs(trade)

        quote = await self.quotes.get_quote(trade.ticker) if self.quotes else None
        if quote is None:
            raise UpstreamUnavailableError(
                "Failed to fetch stock price",
                details={"ticker": trade.ticker},
            )

        updated = await self.trades.update_expiration_data(trade_id, value_at_expiration(trade, quote.price))
        if updated is None:
            raise NotFoundError("Trade not found", details={"trade_id": trade_id})
        log_trade_event(
            "expiration_valued",
            trade_id=trade_id,
            stock_price=str(updated.expiration_stock_price),
            missed_pnl=str(updated.missed_pnl),
        )
        return updated

    async def get_expired_trades(self, today: date | None = None) -> list[Trade]:
        return await self.trades.get_expired_trades(today)

    async def recalculate_expired(self, today: date | None = None) -> ExpirationBatchResult:
        """
        Value every trade on the expired worklist.

        Quotes are fetched once per ticker. Trades whose ticker has no
        quote are reported as skipped and stay on the worklist.
        """
        worklist = await self.trades.get_expired_trades(today)
        result = ExpirationBatchResult()
        if not worklist:
            return result

        quotes = await self.quotes.get_quotes_for_symbols(t.ticker for t in worklist) if self.quotes else {}
        for trade in worklist:
            quote = quotes.get(trade.ticker)
            if quote is None:
                result.skipped.append(trade.id)
                continue
            updated = await self.trades.update_expiration_data(trade.id, value_at_expiration(trade, quote.price))
            if updated is not None:
                result.valued.append(updated)

        logger.info(
            f"Expiration batch: {len(result.valued)} valued, {len(result.skipped)} skipped"
        )
        return result

    async def get_stats(self, user_id: str | None = None) -> UserStats:
        return await self.trades.get_user_stats(user_id)
