"""
Stock quote provider.

Fetches latest underlying prices from Alpha Vantage's GLOBAL_QUOTE
endpoint. Quotes are cached for a few minutes; when the upstream source
reports a rate limit or cannot be reached, the last cached quote is
served even if it is stale.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import httpx

from src.config import Settings
from src.core.cache import InMemoryCache
from src.core.redaction import redact_string
from src.core.retry import CircuitBreaker, CircuitOpenError, retry_async
from src.schemas.quote import StockQuote

logger = logging.getLogger(__name__)


class QuoteProvider(ABC):
    """
    Source of latest stock quotes.
    """

    batch_delay_seconds: float = 0.0

    @abstractmethod
    async def get_quote(self, symbol: str) -> StockQuote | None:
        """Latest quote for a symbol, or None when no quote is available."""

    async def get_quotes_for_symbols(self, symbols: Iterable[str]) -> dict[str, StockQuote]:
        """
        Fetch quotes for several symbols.

        Symbols are upper-cased and de-duplicated, then fetched one at a
        time with a short pause between requests. Symbols without a quote
        are left out of the result.
        """
        unique = list(dict.fromkeys(s.strip().upper() for s in symbols if s and s.strip()))
        quotes: dict[str, StockQuote] = {}
        for index, symbol in enumerate(unique):
            quote = await self.get_quote(symbol)
            if quote is not None:
                quotes[symbol] = quote
            if index < len(unique) - 1 and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)
        return quotes

    async def clear_cache(self) -> None:
        """Drop any cached quotes."""

    def cache_stats(self) -> dict[str, Any] | None:
        return None

    async def close(self) -> None:
        """Release network resources."""


def _decimal(value: Any, default: Decimal | None = None) -> Decimal | None:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value).strip().rstrip("%"))
    except InvalidOperation:
        return default


def parse_global_quote(payload: dict[str, Any], symbol: str) -> StockQuote | None:
    """
    Build a StockQuote from a GLOBAL_QUOTE "Global Quote" object.

    Returns None when the object carries no usable price.
    """
    price = _decimal(payload.get("05. price"))
    if price is None:
        return None
    try:
        volume = int(payload.get("06. volume") or 0)
    except ValueError:
        volume = 0
    return StockQuote(
        symbol=(payload.get("01. symbol") or symbol).upper(),
        price=price,
        change=_decimal(payload.get("09. change"), Decimal("0")),
        change_percent=_decimal(payload.get("10. change percent"), Decimal("0")),
        high=_decimal(payload.get("03. high")),
        low=_decimal(payload.get("04. low")),
        volume=volume,
        as_of=payload.get("07. latest trading day"),
    )


class AlphaVantageQuoteProvider(QuoteProvider):
    """
    Alpha Vantage GLOBAL_QUOTE client with TTL caching.
    Uses retry logic with a circuit breaker for transport failures; each
    instance owns its breaker unless one is passed in.
    """

    DEFAULT_BASE_URL = "https://www.alphavantage.co/query"

    # Keys Alpha Vantage uses in a 200 response to signal throttling
    RATE_LIMIT_KEYS = ("Note", "Information")

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        cache_ttl_seconds: int = 300,
        timeout_seconds: float = 10.0,
        batch_delay_seconds: float = 0.2,
        client: httpx.AsyncClient | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        max_retries: int = 2,
        retry_base_delay: float = 0.5,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._client = client
        self._circuit = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._cache = InMemoryCache(default_ttl=cache_ttl_seconds)
        self.batch_delay_seconds = batch_delay_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlphaVantageQuoteProvider":
        return cls(
            api_key=settings.alpha_vantage_api_key,
            base_url=settings.alpha_vantage_base_url,
            cache_ttl_seconds=settings.quote_cache_ttl_seconds,
            timeout_seconds=settings.quote_request_timeout_seconds,
            batch_delay_seconds=settings.quote_batch_delay_seconds,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """
        Returns reusable async HTTP client.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _fetch(self, symbol: str) -> dict[str, Any]:
        client = await self._get_client()
        response = await retry_async(
            client.get,
            self._base_url,
            params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._api_key},
            max_retries=self._max_retries,
            base_delay=self._retry_base_delay,
            circuit_breaker=self._circuit,
        )
        response.raise_for_status()
        return response.json()

    async def get_quote(self, symbol: str) -> StockQuote | None:
        """
        Latest quote for a symbol.

        Returns:
            Fresh or cached StockQuote; a stale cached quote when the
            upstream source is throttled or unreachable; None otherwise
        """
        symbol = symbol.strip().upper()

        cached = await self._cache.get(symbol)
        if cached is not None:
            return cached

        if not self._api_key:
            logger.error("ALPHA_VANTAGE_API_KEY not configured")
            return None

        try:
            data = await self._fetch(symbol)
        except (httpx.HTTPError, CircuitOpenError, ValueError) as e:
            # httpx errors embed the request URL, which carries the key
            logger.warning(redact_string(f"Quote fetch failed for {symbol}: {e}"))
            return await self._cache.get_stale(symbol)

        for key in self.RATE_LIMIT_KEYS:
            if key in data:
                logger.warning(f"Alpha Vantage rate limit reached: {data[key]}")
                return await self._cache.get_stale(symbol)

        if "Error Message" in data:
            logger.error(f"Alpha Vantage error for {symbol}: {data['Error Message']}")
            return None

        quote = parse_global_quote(data.get("Global Quote") or {}, symbol)
        if quote is None:
            logger.warning(f"No quote data for symbol: {symbol}")
            return None

        await self._cache.set(symbol, quote)
        logger.debug(f"Fetched quote {symbol} @ {quote.price}")
        return quote

    async def clear_cache(self) -> None:
        await self._cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()

    async def close(self) -> None:
        """
        Closes HTTP client connections.
        """
        if self._client:
            await self._client.aclose()
            self._client = None
