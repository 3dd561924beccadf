"""
Comment model for discussion on shared trades.
"""

from datetime import datetime
from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class CommentRecord(Base):
    """
    Immutable comment row. Weakly references its trade by id.
    """

    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_trade_id", "trade_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trade_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<CommentRecord(id={self.id}, trade_id={self.trade_id})>"
