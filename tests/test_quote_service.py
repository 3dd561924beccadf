"""
Tests for the Alpha Vantage quote provider.
Uses httpx.MockTransport so no network access is needed.
"""

import logging
import pytest
from unittest.mock import AsyncMock, call, patch
from decimal import Decimal

import httpx

from src.config import get_settings
from src.core.retry import CircuitBreaker
from src.services.quote_service import AlphaVantageQuoteProvider, QuoteProvider, parse_global_quote


API_KEY = "AV-SECRET-KEY"


def _global_quote(symbol: str, price: str) -> dict:
    return {
        "Global Quote": {
            "01. symbol": symbol,
            "03. high": "191.00",
            "04. low": "187.50",
            "05. price": price,
            "06. volume": "52000000",
            "07. latest trading day": "2025-01-17",
            "09. change": "1.25",
            "10. change percent": "0.6623%",
        }
    }


def _provider(handler, **kwargs) -> AlphaVantageQuoteProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    options = {
        "api_key": API_KEY,
        "client": client,
        "circuit_breaker": CircuitBreaker(failure_threshold=5, recovery_timeout=60),
        "max_retries": 0,
        "retry_base_delay": 0,
        "batch_delay_seconds": 0,
    }
    options.update(kwargs)
    return AlphaVantageQuoteProvider(**options)


class TestParseGlobalQuote:

    def test_parses_fields(self):
        quote = parse_global_quote(_global_quote("AAPL", "189.84")["Global Quote"], "aapl")

        assert quote.symbol == "AAPL"
        assert quote.price == Decimal("189.84")
        assert quote.change_percent == Decimal("0.6623")
        assert quote.volume == 52000000
        assert quote.as_of == "2025-01-17"

    def test_missing_price(self):
        assert parse_global_quote({}, "AAPL") is None
        assert parse_global_quote({"05. price": "n/a"}, "AAPL") is None


class TestAlphaVantageQuoteProvider:
    """Fetching, caching and rate-limit handling."""

    @pytest.mark.asyncio
    async def test_fetch_sends_query_and_caches(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=_global_quote("AAPL", "189.84"))

        provider = _provider(handler)

        first = await provider.get_quote("aapl")
        second = await provider.get_quote("AAPL")

        assert first.price == Decimal("189.84")
        assert second.price == first.price
        assert len(requests) == 1
        params = requests[0].url.params
        assert params["function"] == "GLOBAL_QUOTE"
        assert params["symbol"] == "AAPL"
        assert params["apikey"] == API_KEY
        assert provider.cache_stats()["hits"] == 1
        await provider.close()

    @pytest.mark.asyncio
    async def test_rate_limit_serves_stale_quote(self):
        responses = [
            httpx.Response(200, json=_global_quote("SPY", "485.00")),
            httpx.Response(200, json={"Note": "API call frequency exceeded"}),
        ]

        provider = _provider(lambda request: responses.pop(0), cache_ttl_seconds=-1)

        fresh = await provider.get_quote("SPY")
        stale = await provider.get_quote("SPY")

        assert fresh.price == Decimal("485.00")
        assert stale.price == Decimal("485.00")
        assert responses == []
        await provider.close()

    @pytest.mark.asyncio
    async def test_rate_limit_without_cache(self):
        provider = _provider(lambda request: httpx.Response(200, json={"Information": "Premium endpoint"}))

        assert await provider.get_quote("SPY") is None
        await provider.close()

    @pytest.mark.asyncio
    async def test_error_message_returns_none(self):
        provider = _provider(
            lambda request: httpx.Response(200, json={"Error Message": "Invalid API call"})
        )

        assert await provider.get_quote("NOPE") is None
        await provider.close()

    @pytest.mark.asyncio
    async def test_empty_quote_returns_none(self):
        provider = _provider(lambda request: httpx.Response(200, json={"Global Quote": {}}))

        assert await provider.get_quote("NOPE") is None
        await provider.close()

    @pytest.mark.asyncio
    async def test_server_error_retried_then_none(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        provider = _provider(handler, max_retries=1)

        assert await provider.get_quote("AAPL") is None
        assert len(calls) == 2
        await provider.close()

    @pytest.mark.asyncio
    async def test_transport_error_is_logged_without_api_key(self, caplog):
        def handler(request):
            raise httpx.ConnectError(f"connection refused: {request.url}", request=request)

        provider = _provider(handler)

        with caplog.at_level(logging.WARNING, logger="src.services.quote_service"):
            assert await provider.get_quote("AAPL") is None

        assert "Quote fetch failed for AAPL" in caplog.text
        assert API_KEY not in caplog.text
        await provider.close()

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_global_quote("AAPL", "1"))

        provider = _provider(handler, api_key="")

        assert await provider.get_quote("AAPL") is None
        assert calls == []
        await provider.close()

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_global_quote("AAPL", "189.84"))

        provider = _provider(handler)

        await provider.get_quote("AAPL")
        await provider.clear_cache()
        await provider.get_quote("AAPL")

        assert len(calls) == 2
        await provider.close()

    @pytest.mark.asyncio
    async def test_open_breaker_does_not_affect_other_providers(self):
        failed_requests = []

        def failing(request):
            failed_requests.append(request)
            return httpx.Response(503)

        def healthy(request):
            return httpx.Response(200, json=_global_quote("AAPL", "189.84"))

        first = AlphaVantageQuoteProvider(
            api_key=API_KEY,
            client=httpx.AsyncClient(transport=httpx.MockTransport(failing)),
            max_retries=0,
        )
        second = AlphaVantageQuoteProvider(
            api_key=API_KEY,
            client=httpx.AsyncClient(transport=httpx.MockTransport(healthy)),
            max_retries=0,
        )

        # Five failed lookups open the first provider's breaker
        for symbol in ["A", "B", "C", "D", "E"]:
            assert await first.get_quote(symbol) is None
        assert await first.get_quote("F") is None
        assert len(failed_requests) == 5

        quote = await second.get_quote("AAPL")

        assert quote is not None
        assert quote.price == Decimal("189.84")
        await first.close()
        await second.close()


class TestBatchQuotes:

    @pytest.mark.asyncio
    async def test_dedupes_and_skips_missing(self):
        class FixedQuotes(QuoteProvider):
            def __init__(self):
                self.requested = []

            async def get_quote(self, symbol):
                self.requested.append(symbol)
                if symbol == "SPY":
                    return None
                return parse_global_quote({"05. price": "10"}, symbol)

        provider = FixedQuotes()

        quotes = await provider.get_quotes_for_symbols(["aapl", "AAPL", " spy ", "", "msft"])

        assert provider.requested == ["AAPL", "SPY", "MSFT"]
        assert sorted(quotes) == ["AAPL", "MSFT"]
        assert quotes["MSFT"].price == Decimal("10")
        assert provider.cache_stats() is None

    @pytest.mark.asyncio
    async def test_pauses_between_requests_only(self):
        requested = []

        def handler(request):
            symbol = request.url.params["symbol"]
            requested.append(symbol)
            return httpx.Response(200, json=_global_quote(symbol, "100.00"))

        provider = _provider(handler, batch_delay_seconds=0.2)

        with patch("src.services.quote_service.asyncio.sleep", new_callable=AsyncMock) as sleep:
            quotes = await provider.get_quotes_for_symbols(["AAPL", "msft", "SPY", "aapl"])

        assert requested == ["AAPL", "MSFT", "SPY"]
        assert sorted(quotes) == ["AAPL", "MSFT", "SPY"]
        assert sleep.await_count == 2
        sleep.assert_has_awaits([call(0.2), call(0.2)])
        await provider.close()

    @pytest.mark.asyncio
    async def test_single_symbol_does_not_pause(self):
        provider = _provider(
            lambda request: httpx.Response(200, json=_global_quote("AAPL", "100.00")),
            batch_delay_seconds=0.2,
        )

        with patch("src.services.quote_service.asyncio.sleep", new_callable=AsyncMock) as sleep:
            quotes = await provider.get_quotes_for_symbols(["AAPL"])

        assert list(quotes) == ["AAPL"]
        sleep.assert_not_awaited()
        await provider.close()

    def test_default_pacing_from_settings(self):
        provider = AlphaVantageQuoteProvider.from_settings(get_settings())

        assert provider.batch_delay_seconds == 0.2
