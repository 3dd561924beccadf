"""
Stock quote routes.
"""

from fastapi import APIRouter

from src.api.deps import Quotes, Trades
from src.core.exceptions import NotFoundError
from src.schemas.quote import StockQuote
from src.schemas.trade import FeedFilter


router = APIRouter(prefix="/quotes", tags=["Quotes"])


@router.get("/trades/open", response_model=dict[str, StockQuote])
async def get_open_trade_quotes(trades: Trades, quotes: Quotes) -> dict[str, StockQuote]:
    """
    Returns latest quotes keyed by ticker for every open trade.
    Tickers without a quote are omitted.
    """
    open_trades = await trades.list_trades(FeedFilter.OPEN)
    return await quotes.get_quotes_for_symbols(t.ticker for t in open_trades)


@router.get("/{symbol}", response_model=StockQuote)
async def get_quote(symbol: str, quotes: Quotes) -> StockQuote:
    quote = await quotes.get_quote(symbol)
    if quote is None:
        raise NotFoundError(
            "Quote not found or rate limit exceeded",
            details={"symbol": symbol.upper()},
        )
    return quote
