"""
SQLAlchemy repositories for trades, comments and users.

Each operation opens its own session from the factory and commits
before returning. Multi-row writes (roll, delete, comment creation)
run inside a single transaction.
"""

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

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
from src.models.comment import CommentRecord
from src.models.trade import TradeRecord
from src.models.user import UserRecord
from src.schemas.auth import User
from src.schemas.trade import Comment, FeedFilter, Trade, TradeLeg, TradeStatus
from src.services.valuation import ExpirationValuation

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back out
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _column_values(values: dict[str, Any]) -> dict[str, Any]:
    """
    Converts domain values into column values: enums to their string
    value and legs to JSON-safe dicts.
    """
    converted = {}
    for key, value in values.items():
        if key == "legs":
            value = [TradeLeg.model_validate(leg).model_dump(mode="json") for leg in value]
        elif isinstance(value, Enum):
            value = value.value
        converted[key] = value
    return converted


def _to_trade(record: TradeRecord) -> Trade:
    trade = Trade.model_validate(record)
    return trade.model_copy(update={
        "created_at": _as_utc(trade.created_at),
        "edited_at": _as_utc(trade.edited_at),
    })


def _to_comment(record: CommentRecord) -> Comment:
    comment = Comment.model_validate(record)
    return comment.model_copy(update={"created_at": _as_utc(comment.created_at)})


def _feed_clauses(feed_filter: FeedFilter) -> list:
    if feed_filter == FeedFilter.OPEN:
        return [TradeRecord.status == TradeStatus.OPEN.value]
    if feed_filter == FeedFilter.CLOSED:
        return [TradeRecord.status == TradeStatus.CLOSED.value]
    if feed_filter == FeedFilter.WINNERS:
        return [TradeRecord.pnl.is_not(None), TradeRecord.pnl > 0]
    if feed_filter == FeedFilter.LOSERS:
        return [TradeRecord.pnl.is_not(None), TradeRecord.pnl < 0]
    return []


class SqlTradeRepository(TradeRepository):
    """
    Trade and comment store on a relational database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_trade(self, trade_id: str) -> Trade | None:
        async with self._session_factory() as session:
            record = await session.get(TradeRecord, trade_id)
            return _to_trade(record) if record else None

    async def list_trades(
        self,
        feed_filter: FeedFilter = FeedFilter.ALL,
        *,
        user_id: str | None = None,
        shared_only: bool = False,
    ) -> list[Trade]:
        query = select(TradeRecord).where(*_feed_clauses(feed_filter))
        if user_id is not None:
            query = query.where(TradeRecord.user_id == user_id)
        if shared_only:
            query = query.where(TradeRecord.shared.is_(True))

        async with self._session_factory() as session:
            result = await session.execute(query)
            trades = [_to_trade(r) for r in result.scalars().all()]
        # Sorted here so tz-normalised timestamps order consistently
        return apply_feed_filter(trades, feed_filter)

    async def get_expired_trades(self, today: date | None = None) -> list[Trade]:
        today = today or date.today()
        query = select(TradeRecord).where(
            TradeRecord.status == TradeStatus.CLOSED.value,
            TradeRecord.expiration_stock_price.is_(None),
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            candidates = [_to_trade(r) for r in result.scalars().all()]
        # Leg expirations live in the JSON column, so the date test runs here
        return [t for t in candidates if awaits_expiration_valuation(t, today)]

    async def get_position_trades(self, position_id: str) -> list[Trade]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TradeRecord).where(TradeRecord.position_id == position_id)
            )
            return chain_order(_to_trade(r) for r in result.scalars().all())

    async def get_open_trades_for_user(self, user_id: str) -> list[Trade]:
        return await self.list_trades(FeedFilter.OPEN, user_id=user_id)

    async def create_trade(self, trade: Trade) -> Trade:
        async with self._session_factory() as session:
            session.add(TradeRecord(**_column_values(trade.model_dump())))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValidationError(f"Trade {trade.id} already exists")
        return trade

    async def update_trade(self, trade_id: str, changes: dict[str, Any]) -> Trade | None:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(TradeRecord)
                    .where(TradeRecord.id == trade_id)
                    .values(**_column_values(changes))
                )
                if result.rowcount == 0:
                    return None
        return await self.get_trade(trade_id)

    async def delete_trade(self, trade_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(TradeRecord).where(TradeRecord.id == trade_id))
                if result.rowcount == 0:
                    return False
                await session.execute(delete(CommentRecord).where(CommentRecord.trade_id == trade_id))
        return True

    async def toggle_like(self, trade_id: str, user_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(TradeRecord).where(TradeRecord.id == trade_id).with_for_update()
                )
                record = result.scalar_one_or_none()
                if record is None:
                    raise NotFoundError("Trade not found")
                likes = list(record.likes or [])
                if user_id in likes:
                    likes.remove(user_id)
                else:
                    likes.append(user_id)
                # Assign a new list so the JSON column is flagged dirty
                record.likes = likes
            return user_id in likes

    async def toggle_share(self, trade_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(TradeRecord).where(TradeRecord.id == trade_id).with_for_update()
                )
                record = result.scalar_one_or_none()
                if record is None:
                    raise NotFoundError("Trade not found")
                record.shared = not record.shared
                shared = record.shared
            return shared

    async def get_comments(self, trade_id: str) -> list[Comment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CommentRecord)
                .where(CommentRecord.trade_id == trade_id)
                .order_by(CommentRecord.created_at.asc())
            )
            return [_to_comment(r) for r in result.scalars().all()]

    async def create_comment(self, comment: Comment) -> Comment:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(TradeRecord)
                    .where(TradeRecord.id == comment.trade_id)
                    .values(comment_count=TradeRecord.comment_count + 1)
                )
                if result.rowcount == 0:
                    raise NotFoundError("Trade not found")
                session.add(CommentRecord(**comment.model_dump()))
        return comment

    async def update_expiration_data(self, trade_id: str, valuation: ExpirationValuation) -> Trade | None:
        return await self.update_trade(trade_id, expiration_changes(valuation))

    async def commit_roll(
        self,
        parent_id: str,
        parent_changes: dict[str, Any],
        successor: Trade,
    ) -> tuple[Trade, Trade]:
        async with self._session_factory() as session:
            async with session.begin():
                # Compare-and-set on status: a concurrent roll sees rowcount 0
                result = await session.execute(
                    update(TradeRecord)
                    .where(
                        TradeRecord.id == parent_id,
                        TradeRecord.status == TradeStatus.OPEN.value,
                    )
                    .values(**_column_values(parent_changes))
                )
                if result.rowcount == 0:
                    existing = await session.get(TradeRecord, parent_id)
                    if existing is None:
                        raise NotFoundError("Trade not found")
                    raise ConflictError("Trade is no longer open", details={"trade_id": parent_id})
                session.add(TradeRecord(**_column_values(successor.model_dump())))

        closed = await self.get_trade(parent_id)
        logger.debug(f"Roll committed: {parent_id} -> {successor.id}")
        return closed, successor


class SqlUserRepository(UserRepository):
    """
    User store on a relational database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_user(self, user_id: str) -> User | None:
        async with self._session_factory() as session:
            record = await session.get(UserRecord, user_id)
            return User.model_validate(record) if record else None

    async def get_user_by_username(self, username: str) -> User | None:
        credentials = await self.get_user_credentials(username)
        return credentials[0] if credentials else None

    async def get_user_credentials(self, username: str) -> tuple[User, str | None] | None:
        async with self._session_factory() as session:
            result = await session.execute(select(UserRecord).where(UserRecord.username == username))
            record = result.scalar_one_or_none()
            if record is None:
                return None
            return User.model_validate(record), record.password_hash

    async def create_user(
        self,
        username: str,
        display_name: str,
        password_hash: str | None,
        avatar_url: str | None = None,
        user_id: str | None = None,
    ) -> User:
        record = UserRecord(
            id=user_id or new_id(),
            username=username,
            display_name=display_name,
            avatar_url=avatar_url,
            password_hash=password_hash,
        )
        async with self._session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ValidationError("Username already registered")
            return User.model_validate(record)

    async def list_users(self) -> list[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserRecord).order_by(UserRecord.username))
            return [User.model_validate(r) for r in result.scalars().all()]
