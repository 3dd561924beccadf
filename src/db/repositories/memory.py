"""
In-process repositories backed by dicts.

Every read returns a deep copy so callers cannot mutate stored state.
A single asyncio.Lock serialises writes; commit_roll re-checks the
parent's status under that lock.
"""

import asyncio
import logging
from datetime import date
from typing import Any

from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.db.repositories.base import (
    TradeRepository,
    UserRepository,
    apply_feed_filter,
    awaits_expiration_valuation,
    chain_order,
    expiration_changes,
    new_id,
)
from src.schemas.auth import User
from src.schemas.trade import Comment, FeedFilter, Trade, TradeStatus
from src.services.valuation import ExpirationValuation

logger = logging.getLogger(__name__)


class InMemoryTradeRepository(TradeRepository):
    """
    Trade and comment store held in process memory.
    """

    def __init__(self, trades: list[Trade] | None = None, comments: list[Comment] | None = None):
        self._trades: dict[str, Trade] = {t.id: t.model_copy(deep=True) for t in trades or []}
        self._comments: dict[str, Comment] = {c.id: c.model_copy(deep=True) for c in comments or []}
        self._lock = asyncio.Lock()

    @staticmethod
    def _copy(trade: Trade) -> Trade:
        return trade.model_copy(deep=True)

    def _apply(self, trade_id: str, changes: dict[str, Any]) -> Trade:
        stored = self._trades[trade_id]
        # Re-validate so enum and decimal fields keep their types
        updated = Trade.model_validate({**stored.model_dump(), **changes})
        self._trades[trade_id] = updated
        return updated

    async def get_trade(self, trade_id: str) -> Trade | None:
        trade = self._trades.get(trade_id)
        return self._copy(trade) if trade else None

    async def list_trades(
        self,
        feed_filter: FeedFilter = FeedFilter.ALL,
        *,
        user_id: str | None = None,
        shared_only: bool = False,
    ) -> list[Trade]:
        candidates = [
            t for t in self._trades.values()
            if (user_id is None or t.user_id == user_id) and (not shared_only or t.shared)
        ]
        return [self._copy(t) for t in apply_feed_filter(candidates, feed_filter)]

    async def get_expired_trades(self, today: date | None = None) -> list[Trade]:
        today = today or date.today()
        return [
            self._copy(t) for t in self._trades.values()
            if awaits_expiration_valuation(t, today)
        ]

    async def get_position_trades(self, position_id: str) -> list[Trade]:
        chain = [t for t in self._trades.values() if t.position_id == position_id]
        return [self._copy(t) for t in chain_order(chain)]

    async def get_open_trades_for_user(self, user_id: str) -> list[Trade]:
        return await self.list_trades(FeedFilter.OPEN, user_id=user_id)

    async def create_trade(self, trade: Trade) -> Trade:
        async with self._lock:
            if trade.id in self._trades:
                raise ValidationError(f"Trade {trade.id} already exists")
            self._trades[trade.id] = self._copy(trade)
        return self._copy(trade)

    async def update_trade(self, trade_id: str, changes: dict[str, Any]) -> Trade | None:
        async with self._lock:
            if trade_id not in self._trades:
                return None
            return self._copy(self._apply(trade_id, changes))

    async def delete_trade(self, trade_id: str) -> bool:
        async with self._lock:
            if self._trades.pop(trade_id, None) is None:
                return False
            orphaned = [cid for cid, c in self._comments.items() if c.trade_id == trade_id]
            for cid in orphaned:
                del self._comments[cid]
        return True

    async def toggle_like(self, trade_id: str, user_id: str) -> bool:
        async with self._lock:
            trade = self._trades.get(trade_id)
            if trade is None:
                raise NotFoundError("Trade not found")
            if user_id in trade.likes:
                likes = [u for u in trade.likes if u != user_id]
            else:
                likes = [*trade.likes, user_id]
            self._apply(trade_id, {"likes": likes})
            return user_id in likes

    async def toggle_share(self, trade_id: str) -> bool:
        async with self._lock:
            trade = self._trades.get(trade_id)
            if trade is None:
                raise NotFoundError("Trade not found")
            return self._apply(trade_id, {"shared": not trade.shared}).shared

    async def get_comments(self, trade_id: str) -> list[Comment]:
        comments = [c for c in self._comments.values() if c.trade_id == trade_id]
        comments.sort(key=lambda c: c.created_at)
        return [c.model_copy() for c in comments]

    async def create_comment(self, comment: Comment) -> Comment:
        async with self._lock:
            trade = self._trades.get(comment.trade_id)
            if trade is None:
                raise NotFoundError("Trade not found")
            self._comments[comment.id] = comment.model_copy()
            self._apply(trade.id, {"comment_count": trade.comment_count + 1})
        return comment.model_copy()

    async def update_expiration_data(self, trade_id: str, valuation: ExpirationValuation) -> Trade | None:
        return await self.update_trade(trade_id, expiration_changes(valuation))

    async def commit_roll(
        self,
        parent_id: str,
        parent_changes: dict[str, Any],
        successor: Trade,
    ) -> tuple[Trade, Trade]:
        async with self._lock:
            parent = self._trades.get(parent_id)
            if parent is None:
                raise NotFoundError("Trade not found")
            if parent.status != TradeStatus.OPEN:
                raise ConflictError("Trade is no longer open", details={"trade_id": parent_id})
            closed = self._apply(parent_id, parent_changes)
            self._trades[successor.id] = self._copy(successor)
        logger.debug(f"Roll committed: {parent_id} -> {successor.id}")
        return self._copy(closed), self._copy(successor)


class InMemoryUserRepository(UserRepository):
    """
    User store held in process memory. Password hashes never leave it
    except through get_user_credentials.
    """

    def __init__(self):
        self._users: dict[str, User] = {}
        self._password_hashes: dict[str, str | None] = {}
        self._lock = asyncio.Lock()

    async def get_user(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    async def get_user_by_username(self, username: str) -> User | None:
        for user in self._users.values():
            if user.username == username:
                return user.model_copy()
        return None

    async def get_user_credentials(self, username: str) -> tuple[User, str | None] | None:
        user = await self.get_user_by_username(username)
        if user is None:
            return None
        return user, self._password_hashes.get(user.id)

    async def create_user(
        self,
        username: str,
        display_name: str,
        password_hash: str | None,
        avatar_url: str | None = None,
        user_id: str | None = None,
    ) -> User:
        async with self._lock:
            if any(u.username == username for u in self._users.values()):
                raise ValidationError("Username already registered")
            user = User(
                id=user_id or new_id(),
                username=username,
                display_name=display_name,
                avatar_url=avatar_url,
            )
            self._users[user.id] = user
            self._password_hashes[user.id] = password_hash
        return user.model_copy()

    async def list_users(self) -> list[User]:
        return [u.model_copy() for u in self._users.values()]
