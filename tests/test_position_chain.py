"""
Tests for position chains and the roll operation.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from src.db.repositories import InMemoryTradeRepository
from src.schemas.trade import RollRequest, TradeStatus
from src.services.position_chain import PositionChainManager, ensure_position_id
from src.services.strategy_catalog import AdjustmentType


def _open_trade(trade_factory, **overrides):
    data = {
        "id": "parent",
        "status": "OPEN",
        "exit_price": None,
        "exit_date": None,
        "entry_price": "2.00",
        "quantity": 2,
        "shared": True,
    }
    data.update(overrides)
    return trade_factory(**data)


def _roll_request(**overrides) -> RollRequest:
    data = {
        "ticker": "aapl",
        "strategy": "LONG_CALL",
        "status": "OPEN",
        "legs": [{
            "type": "CALL",
            "action": "BUY",
            "strike": "105",
            "expiration": "2025-02-28",
            "quantity": 2,
        }],
        "entry_price": "2.50",
        "quantity": 2,
        "entry_date": "2025-01-20",
        "parent_exit_price": "3.50",
        "parent_exit_date": "2025-01-20",
    }
    data.update(overrides)
    return RollRequest.model_validate(data)


class TestEnsurePositionId:

    def test_existing_id_kept(self, trade_factory):
        assert ensure_position_id(trade_factory(position_id="pos-x")) == "pos-x"

    def test_derived_from_ticker_and_creation(self, trade_factory, base_time):
        trade = trade_factory(ticker="SPY", position_id=None)

        expected = f"pos-spy-{int(base_time.timestamp() * 1000)}"
        assert ensure_position_id(trade) == expected
        assert ensure_position_id(trade) == expected


class TestRollPosition:
    """Rolling an open trade into a successor."""

    @pytest.mark.asyncio
    async def test_roll_closes_parent_and_links_successor(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory)])
        manager = PositionChainManager(repo)

        result = await manager.roll_position("parent", "user1", _roll_request())

        parent = result.closed_parent
        successor = result.new_trade
        assert parent.status == TradeStatus.CLOSED
        assert parent.exit_price == Decimal("3.50")
        assert parent.exit_date == date(2025, 1, 20)
        assert parent.pnl == Decimal("300")
        assert parent.pnl_percent == Decimal("75")
        assert parent.edited_at is not None

        assert successor.id != parent.id
        assert successor.user_id == "user1"
        assert successor.ticker == "AAPL"
        assert successor.adjustment_type == AdjustmentType.ROLL
        assert successor.parent_trade_id == "parent"
        assert successor.status == TradeStatus.OPEN
        assert successor.pnl is None

    @pytest.mark.asyncio
    async def test_roll_assigns_position_id_to_both(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory, position_id=None)])

        result = await PositionChainManager(repo).roll_position("parent", "user1", _roll_request())

        position_id = result.closed_parent.position_id
        assert position_id and position_id.startswith("pos-aapl-")
        assert result.new_trade.position_id == position_id
        assert (await repo.get_trade("parent")).position_id == position_id

    @pytest.mark.asyncio
    async def test_roll_keeps_existing_position_id(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory, position_id="pos-existing")])

        result = await PositionChainManager(repo).roll_position("parent", "user1", _roll_request())

        assert result.closed_parent.position_id == "pos-existing"
        assert result.new_trade.position_id == "pos-existing"

    @pytest.mark.asyncio
    async def test_successor_inherits_visibility(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory, shared=False)])

        result = await PositionChainManager(repo).roll_position("parent", "user1", _roll_request())

        assert result.new_trade.shared is False

    @pytest.mark.asyncio
    async def test_roll_resets_stale_expiration_fields(self, trade_factory):
        repo = InMemoryTradeRepository([
            _open_trade(trade_factory, expiration_stock_price="190", missed_pnl="50"),
        ])

        result = await PositionChainManager(repo).roll_position("parent", "user1", _roll_request())

        assert result.closed_parent.expiration_stock_price is None
        assert result.closed_parent.missed_pnl is None

    @pytest.mark.asyncio
    async def test_exit_date_defaults_to_today(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory)])

        result = await PositionChainManager(repo).roll_position(
            "parent", "user1", _roll_request(parent_exit_date=None)
        )

        assert result.closed_parent.exit_date == date.today()

    @pytest.mark.asyncio
    async def test_unknown_parent(self):
        manager = PositionChainManager(InMemoryTradeRepository())

        with pytest.raises(NotFoundError):
            await manager.roll_position("missing", "user1", _roll_request())

    @pytest.mark.asyncio
    async def test_only_owner_can_roll(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory)])

        with pytest.raises(AuthorizationError):
            await PositionChainManager(repo).roll_position("parent", "user2", _roll_request())

        assert (await repo.get_trade("parent")).status == TradeStatus.OPEN

    @pytest.mark.asyncio
    async def test_closed_trade_cannot_roll(self, trade_factory):
        repo = InMemoryTradeRepository([trade_factory(id="parent")])

        with pytest.raises(ValidationError, match="open trades"):
            await PositionChainManager(repo).roll_position("parent", "user1", _roll_request())

    @pytest.mark.asyncio
    async def test_second_roll_rejected(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory)])
        manager = PositionChainManager(repo)
        await manager.roll_position("parent", "user1", _roll_request())

        with pytest.raises(ValidationError):
            await manager.roll_position("parent", "user1", _roll_request())

        assert len(await repo.list_trades()) == 2

    @pytest.mark.asyncio
    async def test_invalid_successor_leaves_parent_open(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory)])

        with pytest.raises(ValidationError, match="Exit date"):
            await PositionChainManager(repo).roll_position(
                "parent", "user1", _roll_request(status="CLOSED", exit_price="4.00")
            )

        assert (await repo.get_trade("parent")).status == TradeStatus.OPEN
        assert len(await repo.list_trades()) == 1

    @pytest.mark.asyncio
    async def test_losing_race_raises_conflict(self, trade_factory):
        """A parent closed between the check and the commit is not rolled twice."""
        repo = InMemoryTradeRepository([_open_trade(trade_factory)])

        class RacingRepository(InMemoryTradeRepository):
            async def commit_roll(self, parent_id, parent_changes, successor):
                await repo.update_trade(parent_id, {"status": "CLOSED"})
                return await repo.commit_roll(parent_id, parent_changes, successor)

            async def get_trade(self, trade_id):
                return await repo.get_trade(trade_id)

        manager = PositionChainManager(RacingRepository())

        with pytest.raises(ConflictError):
            await manager.roll_position("parent", "user1", _roll_request())

        assert len(await repo.list_trades()) == 1


class TestChainQueries:

    @pytest.mark.asyncio
    async def test_chain_after_two_rolls(self, trade_factory):
        repo = InMemoryTradeRepository([_open_trade(trade_factory, entry_date="2025-01-10")])
        manager = PositionChainManager(repo)

        first = await manager.roll_position("parent", "user1", _roll_request(entry_date="2025-01-20"))
        second = await manager.roll_position(
            first.new_trade.id, "user1", _roll_request(entry_date="2025-02-10")
        )

        chain = await manager.get_position_chain(first.new_trade.position_id)

        assert [t.id for t in chain] == ["parent", first.new_trade.id, second.new_trade.id]
        assert second.new_trade.parent_trade_id == first.new_trade.id
        assert [t.status for t in chain] == [TradeStatus.CLOSED, TradeStatus.CLOSED, TradeStatus.OPEN]

    @pytest.mark.asyncio
    async def test_open_positions_for_user(self, trade_factory):
        repo = InMemoryTradeRepository([
            _open_trade(trade_factory, id="mine"),
            _open_trade(trade_factory, id="theirs", user_id="user2"),
            trade_factory(id="closed"),
        ])

        open_trades = await PositionChainManager(repo).get_open_positions_for_user("user1")

        assert [t.id for t in open_trades] == ["mine"]
