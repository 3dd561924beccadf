"""
Stock quote schema returned by the quote provider.
"""

from decimal import Decimal
from pydantic import BaseModel


class StockQuote(BaseModel):
    """
    Latest quote for an underlying symbol.
    """
    symbol: str
    price: Decimal
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    high: Decimal | None = None
    low: Decimal | None = None
    volume: int = 0
    as_of: str | None = None
