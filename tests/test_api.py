"""
End-to-end tests through the HTTP API.
The app runs against in-memory repositories seeded with the demo data
and a fixed-price quote provider.
"""

import pytest
from decimal import Decimal

from fastapi.testclient import TestClient

from src.db.repositories import InMemoryTradeRepository, InMemoryUserRepository
from src.main import create_app
from src.schemas.quote import StockQuote
from src.services.quote_service import QuoteProvider


class FixedQuoteProvider(QuoteProvider):
    """Serves quotes from a fixed price table."""

    def __init__(self, prices: dict[str, str]):
        self.prices = prices
        self.closed = False

    async def get_quote(self, symbol):
        price = self.prices.get(symbol.upper())
        if price is None:
            return None
        return StockQuote(symbol=symbol.upper(), price=Decimal(price))

    async def close(self):
        self.closed = True


PRICES = {"AAPL": "195", "SPY": "460", "NVDA": "600", "TSLA": "230", "AMD": "170"}


@pytest.fixture
def quotes():
    return FixedQuoteProvider(dict(PRICES))


@pytest.fixture
def client(quotes):
    app = create_app(
        trade_repository=InMemoryTradeRepository(),
        user_repository=InMemoryUserRepository(),
        quote_provider=quotes,
    )
    with TestClient(app) as test_client:
        yield test_client


def _register(client, username="dana_theta") -> dict:
    response = client.post("/api/auth/register", json={
        "username": username,
        "display_name": "Dana",
        "password": "long-enough-password",
    })
    assert response.status_code == 201
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}", "user_id": body["user"]["id"]}


def _headers(auth: dict) -> dict:
    return {"Authorization": auth["Authorization"]}


def _open_trade_body(**overrides) -> dict:
    body = {
        "ticker": "msft",
        "strategy": "LONG_CALL",
        "status": "OPEN",
        "legs": [{
            "type": "CALL", "action": "BUY", "strike": "420",
            "expiration": "2025-03-21", "quantity": 1, "premium": "6.00",
        }],
        "entry_price": "6.00",
        "quantity": 1,
        "entry_date": "2025-01-15",
    }
    body.update(overrides)
    return body


# =============================================================================
# Feeds and seeded data
# =============================================================================

class TestFeeds:
    """Reading the seeded journal."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage_backend"] == "memory"
        assert body["quote_cache"] is None

    def test_shared_feed_newest_first(self, client):
        response = client.get("/api/trades/shared")

        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == ["trade4", "trade2", "trade1", "trade6"]

    def test_winners_and_losers(self, client):
        winners = client.get("/api/trades", params={"filter": "winners"}).json()
        losers = client.get("/api/trades", params={"filter": "losers"}).json()

        assert [t["id"] for t in winners] == ["trade1", "trade6"]
        assert [t["id"] for t in losers] == ["trade3"]

    def test_unknown_filter_rejected(self, client):
        assert client.get("/api/trades", params={"filter": "bogus"}).status_code == 422

    def test_seeded_trade_values(self, client):
        trade = client.get("/api/trades/trade1").json()

        assert Decimal(trade["pnl"]) == Decimal("1800")
        assert round(Decimal(trade["pnl_percent"]), 2) == Decimal("124.14")
        assert trade["comment_count"] == 2
        assert set(trade["likes"]) == {"user2", "user3"}

    def test_seeded_expiration_valuation(self, client):
        trade = client.get("/api/trades/trade6").json()

        assert Decimal(trade["expiration_stock_price"]) == Decimal("520")
        assert Decimal(trade["theoretical_exit_value"]) == Decimal("20")
        assert Decimal(trade["missed_pnl"]) == Decimal("-400")

    def test_unknown_trade(self, client):
        response = client.get("/api/trades/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_comments_oldest_first(self, client):
        comments = client.get("/api/trades/trade4/comments").json()

        assert [c["id"] for c in comments] == ["c4", "c5", "c6"]

    def test_stats(self, client):
        overall = client.get("/api/stats").json()
        alex = client.get("/api/stats", params={"user_id": "user1"}).json()

        assert overall["total_trades"] == 6
        assert overall["closed_trades"] == 3
        assert Decimal(overall["total_pnl"]) == Decimal("1780")
        assert overall["best_trade"]["id"] == "trade6"
        assert overall["worst_trade"]["id"] == "trade3"
        assert alex["total_trades"] == 2
        assert Decimal(alex["win_rate"]) == Decimal("100")

    def test_users(self, client):
        usernames = {u["username"] for u in client.get("/api/users").json()}

        assert {"alex_trader", "maria_options", "john_spread", "guest"} <= usernames


# =============================================================================
# Authentication
# =============================================================================

class TestAuthFlow:

    def test_register_and_me(self, client):
        auth = _register(client)

        me = client.get("/api/users/me", headers=_headers(auth))

        assert me.status_code == 200
        assert me.json()["username"] == "dana_theta"

    def test_duplicate_username(self, client):
        _register(client)

        response = client.post("/api/auth/register", json={
            "username": "dana_theta", "display_name": "Again", "password": "long-enough-password",
        })

        assert response.status_code == 400

    def test_login(self, client):
        _register(client)

        ok = client.post("/api/auth/login", json={"username": "dana_theta", "password": "long-enough-password"})
        bad = client.post("/api/auth/login", json={"username": "dana_theta", "password": "wrong-password"})

        assert ok.status_code == 200
        assert ok.json()["token_type"] == "bearer"
        assert bad.status_code == 401

    def test_demo_users_cannot_log_in(self, client):
        response = client.post("/api/auth/login", json={"username": "alex_trader", "password": "anything"})

        assert response.status_code == 401

    def test_writes_require_token(self, client):
        assert client.post("/api/trades", json=_open_trade_body()).status_code == 401
        assert client.get("/api/trades/mine").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401
        assert response.json()["error"] == "AuthenticationError"


# =============================================================================
# Trade writes
# =============================================================================

class TestTradeWrites:
    """Create, edit, share and delete over HTTP."""

    def test_create_and_list_mine(self, client):
        auth = _register(client)

        created = client.post("/api/trades", json=_open_trade_body(), headers=_headers(auth))

        assert created.status_code == 201
        trade = created.json()
        assert trade["ticker"] == "MSFT"
        assert trade["user_id"] == auth["user_id"]
        assert trade["pnl"] is None
        mine = client.get("/api/trades/mine", headers=_headers(auth)).json()
        assert [t["id"] for t in mine] == [trade["id"]]

    def test_closed_option_trade_needs_exit_date(self, client):
        auth = _register(client)

        response = client.post(
            "/api/trades",
            json=_open_trade_body(status="CLOSED", exit_price="8.00"),
            headers=_headers(auth),
        )

        assert response.status_code == 400
        assert "Exit date" in response.json()["message"]

    def test_schema_errors_are_422(self, client):
        auth = _register(client)

        response = client.post("/api/trades", json=_open_trade_body(legs=[]), headers=_headers(auth))

        assert response.status_code == 422

    def test_update_recomputes_pnl(self, client):
        auth = _register(client)
        trade = client.post("/api/trades", json=_open_trade_body(), headers=_headers(auth)).json()

        response = client.put(
            f"/api/trades/{trade['id']}",
            json=_open_trade_body(status="CLOSED", exit_price="9.00", exit_date="2025-01-20"),
            headers=_headers(auth),
        )

        assert response.status_code == 200
        assert Decimal(response.json()["pnl"]) == Decimal("300")
        assert response.json()["edited_at"] is not None

    def test_cannot_edit_or_delete_others_trades(self, client):
        auth = _register(client)

        edit = client.put("/api/trades/trade1", json=_open_trade_body(), headers=_headers(auth))
        delete = client.delete("/api/trades/trade1", headers=_headers(auth))
        share = client.post("/api/trades/trade1/share", headers=_headers(auth))

        assert edit.status_code == 403
        assert delete.status_code == 403
        assert share.status_code == 403

    def test_share_and_delete_own_trade(self, client):
        auth = _register(client)
        trade = client.post("/api/trades", json=_open_trade_body(), headers=_headers(auth)).json()

        shared = client.post(f"/api/trades/{trade['id']}/share", headers=_headers(auth))
        assert shared.json() == {"shared": True}
        assert trade["id"] in [t["id"] for t in client.get("/api/trades/shared").json()]

        deleted = client.delete(f"/api/trades/{trade['id']}", headers=_headers(auth))
        assert deleted.status_code == 200
        assert client.get(f"/api/trades/{trade['id']}").status_code == 404


class TestSocial:

    def test_like_toggle(self, client):
        auth = _register(client)

        first = client.post("/api/trades/trade3/like", headers=_headers(auth))
        second = client.post("/api/trades/trade3/like", headers=_headers(auth))

        assert first.json() == {"liked": True}
        assert second.json() == {"liked": False}
        assert client.get("/api/trades/trade3").json()["likes"] == []

    def test_comment_increments_count(self, client):
        auth = _register(client)

        response = client.post(
            "/api/trades/trade2/comments", json={"content": "How did the IV crush go?"}, headers=_headers(auth),
        )

        assert response.status_code == 201
        assert client.get("/api/trades/trade2").json()["comment_count"] == 2

    def test_blank_comment_rejected(self, client):
        auth = _register(client)

        response = client.post("/api/trades/trade2/comments", json={"content": "   "}, headers=_headers(auth))

        assert response.status_code == 422


# =============================================================================
# Rolls and positions
# =============================================================================

class TestRolls:

    def _roll_body(self, **overrides) -> dict:
        body = _open_trade_body(
            legs=[{
                "type": "CALL", "action": "BUY", "strike": "430",
                "expiration": "2025-04-17", "quantity": 1,
            }],
            entry_price="5.00",
            entry_date="2025-02-01",
            parent_exit_price="7.50",
            parent_exit_date="2025-02-01",
        )
        body.update(overrides)
        return body

    def test_roll_flow(self, client):
        auth = _register(client)
        parent = client.post("/api/trades", json=_open_trade_body(shared=True), headers=_headers(auth)).json()

        response = client.post(f"/api/trades/{parent['id']}/roll", json=self._roll_body(), headers=_headers(auth))

        assert response.status_code == 201
        closed = response.json()["closed_parent"]
        successor = response.json()["new_trade"]
        assert closed["status"] == "CLOSED"
        assert Decimal(closed["pnl"]) == Decimal("150")
        assert successor["adjustment_type"] == "ROLL"
        assert successor["parent_trade_id"] == parent["id"]
        assert successor["shared"] is True
        assert successor["position_id"] == closed["position_id"]

        chain = client.get(f"/api/positions/{closed['position_id']}/trades").json()
        assert [t["id"] for t in chain] == [parent["id"], successor["id"]]

        open_positions = client.get("/api/positions/open", headers=_headers(auth)).json()
        assert [t["id"] for t in open_positions] == [successor["id"]]

    def test_roll_closed_trade_rejected(self, client):
        auth = _register(client)
        parent = client.post("/api/trades", json=_open_trade_body(), headers=_headers(auth)).json()
        client.post(f"/api/trades/{parent['id']}/roll", json=self._roll_body(), headers=_headers(auth))

        again = client.post(f"/api/trades/{parent['id']}/roll", json=self._roll_body(), headers=_headers(auth))

        assert again.status_code == 400

    def test_roll_others_trade_forbidden(self, client):
        auth = _register(client)

        response = client.post("/api/trades/trade4/roll", json=self._roll_body(), headers=_headers(auth))

        assert response.status_code == 403

    def test_unknown_position_is_empty(self, client):
        assert client.get("/api/positions/pos-none/trades").json() == []


# =============================================================================
# Expiration valuation and quotes
# =============================================================================

class TestExpiration:

    def test_calculate_expiration(self, client):
        auth = _register(client)

        response = client.post("/api/trades/trade3/calculate-expiration", headers=_headers(auth))

        assert response.status_code == 200
        trade = response.json()
        assert Decimal(trade["expiration_stock_price"]) == Decimal("460")
        assert Decimal(trade["theoretical_exit_value"]) == Decimal("10")
        assert Decimal(trade["missed_pnl"]) == Decimal("2370")

    def test_calculate_expiration_needs_auth(self, client):
        assert client.post("/api/trades/trade3/calculate-expiration").status_code == 401

    def test_open_trade_rejected(self, client):
        auth = _register(client)

        response = client.post("/api/trades/trade2/calculate-expiration", headers=_headers(auth))

        assert response.status_code == 400

    def test_missing_quote_is_502(self, client):
        auth = _register(client)

        response = client.post("/api/trades/trade6/calculate-expiration", headers=_headers(auth))

        assert response.status_code == 502
        assert response.json()["error"] == "UpstreamUnavailableError"

    def test_expired_worklist_and_batch(self, client):
        auth = _register(client)

        worklist = client.get("/api/trades/expired", params={"today": "2025-06-01"}).json()
        assert [t["id"] for t in worklist] == ["trade1"]

        result = client.post(
            "/api/trades/expired/calculate", params={"today": "2025-06-01"}, headers=_headers(auth),
        ).json()

        assert [t["id"] for t in result["valued"]] == ["trade1"]
        assert result["skipped"] == []
        assert Decimal(result["valued"][0]["theoretical_exit_value"]) == Decimal("10")
        assert client.get("/api/trades/expired", params={"today": "2025-06-01"}).json() == []


class TestQuotes:

    def test_quote(self, client):
        response = client.get("/api/quotes/spy")

        assert response.status_code == 200
        assert Decimal(response.json()["price"]) == Decimal("460")

    def test_unknown_quote(self, client):
        response = client.get("/api/quotes/ZZZZ")

        assert response.status_code == 404

    def test_open_trade_quotes(self, client):
        body = client.get("/api/quotes/trades/open").json()

        assert set(body) == {"TSLA", "NVDA", "AMD"}

    def test_provider_closed_on_shutdown(self, quotes):
        app = create_app(
            trade_repository=InMemoryTradeRepository(),
            user_repository=InMemoryUserRepository(),
            quote_provider=quotes,
        )
        with TestClient(app):
            assert quotes.closed is False

        assert quotes.closed is True


class TestStrategyCatalog:

    def test_catalog_grouped_by_category(self, client):
        response = client.get("/api/strategies")

        assert response.status_code == 200
        body = response.json()
        assert set(body["categories"]) == {"simple", "vertical", "advanced"}
        assert [s["key"] for s in body["categories"]["simple"]] == ["LONG_CALL", "LONG_PUT", "STOCK"]
        assert sum(len(entries) for entries in body["categories"].values()) == 16

        condor = next(s for s in body["categories"]["advanced"] if s["key"] == "IRON_CONDOR")
        assert condor["name"] == "Iron Condor"
        assert condor["legs"] == 4
        assert condor["multiplier"] == 100
        stock = body["categories"]["simple"][2]
        assert stock["multiplier"] == 1

    def test_adjustment_types(self, client):
        body = client.get("/api/strategies").json()

        assert [a["key"] for a in body["adjustment_types"]] == ["OPEN", "ROLL", "ADJUST", "CLOSE_OUT"]
        assert body["adjustment_types"][1]["name"] == "Roll"
