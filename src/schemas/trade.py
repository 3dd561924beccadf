"""
Trade schemas: legs, trade records, write requests, rolls and comments.
The same models are used as the domain records passed between the
services and the repositories.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from src.services.strategy_catalog import AdjustmentType, Strategy


class LegType(str, Enum):
    CALL = "CALL"
    PUT = "PUT"
    STOCK = "STOCK"


class LegAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PARTIAL = "PARTIAL"


class FeedFilter(str, Enum):
    """Feed views over the trade collection."""
    ALL = "all"
    OPEN = "open"
    CLOSED = "closed"
    WINNERS = "winners"
    LOSERS = "losers"


def _blank_to_none(value):
    # Forms submit "" for cleared optional fields
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class TradeLeg(BaseModel):
    """
    One contract or share lot within a trade.
    Strike and expiration are absent for STOCK legs.
    """
    type: LegType
    action: LegAction
    strike: Decimal | None = None
    expiration: date | None = None
    quantity: int = Field(..., gt=0)
    premium: Decimal | None = None

    @field_validator("strike", "expiration", "premium", mode="before")
    @classmethod
    def blank_as_missing(cls, v):
        return _blank_to_none(v)

    @property
    def is_option(self) -> bool:
        return self.type != LegType.STOCK


class TradeTerms(BaseModel):
    """
    Client-editable terms of a trade.
    Shared by create, update and roll requests.
    """
    ticker: str = Field(..., min_length=1, max_length=10)
    strategy: Strategy
    status: TradeStatus = TradeStatus.OPEN
    legs: list[TradeLeg] = Field(..., min_length=1)
    entry_price: Decimal
    exit_price: Decimal | None = None
    quantity: int = Field(..., ge=1)
    entry_date: date
    exit_date: date | None = None
    notes: str | None = None
    max_profit: Decimal | None = None
    max_loss: Decimal | None = None

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("exit_price", "exit_date", "max_profit", "max_loss", "notes", mode="before")
    @classmethod
    def blank_as_missing(cls, v):
        return _blank_to_none(v)


class TradeCreate(TradeTerms):
    """
    Schema for recording a new trade.
    Chain fields may be supplied for manual adjustments.
    """
    shared: bool = False
    position_id: str | None = None
    adjustment_type: AdjustmentType = AdjustmentType.OPEN
    parent_trade_id: str | None = None


class TradeUpdate(TradeTerms):
    """
    Schema for editing a trade's terms.
    Ownership, visibility and chain linkage are not editable here.
    """


class RollRequest(TradeTerms):
    """
    Schema for rolling an open trade: the exit of the parent plus the
    terms of the successor trade.
    """
    parent_exit_price: Decimal
    parent_exit_date: date | None = None

    @field_validator("parent_exit_date", mode="before")
    @classmethod
    def blank_exit_date(cls, v):
        return _blank_to_none(v)


class Trade(TradeTerms):
    """
    A stored trade, including server-computed fields.
    """
    id: str
    user_id: str
    shared: bool = False
    created_at: datetime
    edited_at: datetime | None = None

    # Computed on write, never client-set
    pnl: Decimal | None = None
    pnl_percent: Decimal | None = None

    likes: list[str] = Field(default_factory=list)
    comment_count: int = 0

    # Populated only by an explicit expiration valuation
    expiration_stock_price: Decimal | None = None
    theoretical_exit_value: Decimal | None = None
    missed_pnl: Decimal | None = None

    position_id: str | None = None
    adjustment_type: AdjustmentType = AdjustmentType.OPEN
    parent_trade_id: str | None = None

    model_config = {"from_attributes": True}

    @property
    def option_legs_with_expiration(self) -> list[TradeLeg]:
        return [leg for leg in self.legs if leg.is_option and leg.expiration is not None]


class RollResponse(BaseModel):
    """Result of a roll: the closed parent and the successor trade."""
    closed_parent: Trade
    new_trade: Trade


class ExpirationBatchResult(BaseModel):
    """
    Outcome of valuing the expired-trade worklist.
    Trades whose ticker had no quote are left for the next run.
    """
    valued: list[Trade] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class LikeResponse(BaseModel):
    liked: bool


class ShareResponse(BaseModel):
    shared: bool


class CommentCreate(BaseModel):
    """
    Schema for posting a comment on a trade.
    """
    content: str = Field(..., min_length=1, max_length=500)

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment cannot be blank")
        return v


class Comment(BaseModel):
    """
    Schema for a stored comment.
    """
    id: str
    trade_id: str
    user_id: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}
