"""
Repository interfaces for trades, comments and users.

Services depend on these abstract classes only, so the valuation engine
and the position chain manager run unchanged against the in-memory map
or a relational database. Shared query semantics (feed filters, ordering,
the expired-trade worklist rule) live here as plain functions.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Iterable

from src.schemas.auth import User
from src.schemas.dashboard import UserStats
from src.schemas.trade import Comment, FeedFilter, Trade, TradeCreate, TradeStatus
from src.services.analytics_service import summarize_trades
from src.services.valuation import ExpirationValuation, realized_pnl_for


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_trade(
    data: TradeCreate,
    user_id: str,
    trade_id: str | None = None,
    created_at: datetime | None = None,
) -> Trade:
    """
    Build a new trade record from a create request.

    Assigns identity and timestamps, computes realized P&L from the
    submitted terms, and starts the social and expiration fields empty.
    """
    realized = realized_pnl_for(
        data.status, data.entry_price, data.exit_price, data.quantity, data.strategy
    )
    return Trade(
        **data.model_dump(),
        id=trade_id or new_id(),
        user_id=user_id,
        created_at=created_at or utc_now(),
        pnl=realized.pnl,
        pnl_percent=realized.pnl_percent,
        likes=[],
        comment_count=0,
    )


def matches_filter(trade: Trade, feed_filter: FeedFilter) -> bool:
    """Winners/losers require a realized P&L; absent P&L matches neither."""
    if feed_filter == FeedFilter.OPEN:
        return trade.status == TradeStatus.OPEN
    if feed_filter == FeedFilter.CLOSED:
        return trade.status == TradeStatus.CLOSED
    if feed_filter == FeedFilter.WINNERS:
        return trade.pnl is not None and trade.pnl > 0
    if feed_filter == FeedFilter.LOSERS:
        return trade.pnl is not None and trade.pnl < 0
    return True


def apply_feed_filter(trades: Iterable[Trade], feed_filter: FeedFilter = FeedFilter.ALL) -> list[Trade]:
    """Filter a trade set and order it newest first."""
    selected = [t for t in trades if matches_filter(t, feed_filter)]
    return sorted(selected, key=lambda t: t.created_at, reverse=True)


def awaits_expiration_valuation(trade: Trade, today: date) -> bool:
    """
    True when a closed trade has an option leg that expired on or before
    today and no expiration valuation has been stored yet.
    """
    if trade.status != TradeStatus.CLOSED or trade.expiration_stock_price is not None:
        return False
    return any(leg.expiration <= today for leg in trade.option_legs_with_expiration)


def chain_order(trades: Iterable[Trade]) -> list[Trade]:
    """Oldest first by entry date, then creation time."""
    return sorted(trades, key=lambda t: (t.entry_date, t.created_at))


def expiration_changes(valuation: ExpirationValuation) -> dict[str, Any]:
    return {
        "expiration_stock_price": valuation.stock_price,
        "theoretical_exit_value": valuation.theoretical_exit_value,
        "missed_pnl": valuation.missed_pnl,
    }


class TradeRepository(ABC):
    """
    Storage contract for trades and their comments.
    All methods return detached copies; callers mutate through the
    repository only.
    """

    @abstractmethod
    async def get_trade(self, trade_id: str) -> Trade | None:
        ...

    @abstractmethod
    async def list_trades(
        self,
        feed_filter: FeedFilter = FeedFilter.ALL,
        *,
        user_id: str | None = None,
        shared_only: bool = False,
    ) -> list[Trade]:
        """Filtered view, newest first, optionally scoped to an owner or to shared trades."""

    async def get_shared_trades(self, feed_filter: FeedFilter = FeedFilter.ALL) -> list[Trade]:
        return await self.list_trades(feed_filter, shared_only=True)

    async def get_user_trades(self, user_id: str, feed_filter: FeedFilter = FeedFilter.ALL) -> list[Trade]:
        return await self.list_trades(feed_filter, user_id=user_id)

    @abstractmethod
    async def get_expired_trades(self, today: date | None = None) -> list[Trade]:
        """Worklist of closed trades awaiting an expiration valuation."""

    @abstractmethod
    async def get_position_trades(self, position_id: str) -> list[Trade]:
        """All trades of one position chain, oldest first."""

    @abstractmethod
    async def get_open_trades_for_user(self, user_id: str) -> list[Trade]:
        ...

    @abstractmethod
    async def create_trade(self, trade: Trade) -> Trade:
        ...

    @abstractmethod
    async def update_trade(self, trade_id: str, changes: dict[str, Any]) -> Trade | None:
        """Apply field changes; returns None for an unknown id."""

    @abstractmethod
    async def delete_trade(self, trade_id: str) -> bool:
        """Delete a trade and its comments."""

    @abstractmethod
    async def toggle_like(self, trade_id: str, user_id: str) -> bool:
        """Flip the user's like; returns True when the trade is now liked."""

    @abstractmethod
    async def toggle_share(self, trade_id: str) -> bool:
        """Flip visibility; returns the new shared value."""

    @abstractmethod
    async def get_comments(self, trade_id: str) -> list[Comment]:
        """Comments on a trade, oldest first."""

    @abstractmethod
    async def create_comment(self, comment: Comment) -> Comment:
        """Store a comment and increment the trade's comment_count."""

    @abstractmethod
    async def update_expiration_data(self, trade_id: str, valuation: ExpirationValuation) -> Trade | None:
        ...

    @abstractmethod
    async def commit_roll(
        self,
        parent_id: str,
        parent_changes: dict[str, Any],
        successor: Trade,
    ) -> tuple[Trade, Trade]:
        """
        Close the parent and insert the successor as one unit.

        The parent must still be OPEN when the write is applied.

        Raises:
            NotFoundError: If the parent no longer exists
            ConflictError: If the parent is no longer OPEN
        """

    async def get_user_stats(self, user_id: str | None = None) -> UserStats:
        return summarize_trades(await self.list_trades(user_id=user_id))


class UserRepository(ABC):
    """Storage contract for journal users."""

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None:
        ...

    @abstractmethod
    async def get_user_credentials(self, username: str) -> tuple[User, str | None] | None:
        """User plus stored password hash, for login."""

    @abstractmethod
    async def create_user(
        self,
        username: str,
        display_name: str,
        password_hash: str | None,
        avatar_url: str | None = None,
        user_id: str | None = None,
    ) -> User:
        """
        Raises:
            ValidationError: If the username is taken
        """

    @abstractmethod
    async def list_users(self) -> list[User]:
        ...
