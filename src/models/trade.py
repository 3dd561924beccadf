"""
Trade model for journaled option and stock trades.
Legs are stored as a JSON document; position-chain fields link
rolled trades together.
"""

from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import String, Text, Date, DateTime, Numeric, Integer, Boolean, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.db.database import Base


class TradeRecord(Base):
    """
    Stored trade row.
    Computed fields (pnl, expiration valuation) are written by the services.
    """

    __tablename__ = "trades"
    __table_args__ = (
        Index("ix_trades_user_id", "user_id"),
        Index("ix_trades_status", "status"),
        Index("ix_trades_position_id", "position_id"),
        Index("ix_trades_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    ticker: Mapped[str] = mapped_column(String(10), nullable=False)
    strategy: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="OPEN")
    legs: Mapped[list] = mapped_column(JSON, nullable=False)

    entry_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    exit_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    exit_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    max_profit: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)
    max_loss: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)

    pnl: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)
    pnl_percent: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)

    likes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    expiration_stock_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)
    theoretical_exit_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)
    missed_pnl: Mapped[Decimal | None] = mapped_column(Numeric(18, 6), nullable=True)

    position_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    adjustment_type: Mapped[str] = mapped_column(String(16), nullable=False, default="OPEN")
    parent_trade_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<TradeRecord(id={self.id}, ticker={self.ticker}, status={self.status})>"
