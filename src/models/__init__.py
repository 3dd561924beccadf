# Models module
from src.models.user import UserRecord
from src.models.trade import TradeRecord
from src.models.comment import CommentRecord

__all__ = [
    "UserRecord",
    "TradeRecord",
    "CommentRecord",
]
