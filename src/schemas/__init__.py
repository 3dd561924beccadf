"""
Pydantic schema exports.
"""

from src.schemas.auth import (
    UserCreate,
    UserLogin,
    User,
    TokenResponse,
)
from src.schemas.common import (
    MessageResponse,
    ErrorResponse,
)
from src.schemas.dashboard import UserStats
from src.schemas.quote import StockQuote
from src.schemas.strategy import AdjustmentEntry, StrategyCatalog, StrategyEntry
from src.schemas.trade import (
    Comment,
    CommentCreate,
    ExpirationBatchResult,
    FeedFilter,
    LegAction,
    LegType,
    LikeResponse,
    RollRequest,
    RollResponse,
    ShareResponse,
    Trade,
    TradeCreate,
    TradeLeg,
    TradeStatus,
    TradeUpdate,
)

__all__ = [
    "UserCreate",
    "UserLogin",
    "User",
    "TokenResponse",
    "MessageResponse",
    "ErrorResponse",
    "UserStats",
    "StockQuote",
    "AdjustmentEntry",
    "StrategyCatalog",
    "StrategyEntry",
    "Comment",
    "CommentCreate",
    "ExpirationBatchResult",
    "FeedFilter",
    "LegAction",
    "LegType",
    "LikeResponse",
    "RollRequest",
    "RollResponse",
    "ShareResponse",
    "Trade",
    "TradeCreate",
    "TradeLeg",
    "TradeStatus",
    "TradeUpdate",
]
