"""
Demo data for a fresh journal.

Seeds four users, six trades and a handful of comments so the feed has
something to show. Seeding goes through the repository interfaces and is
skipped when any user already exists, so it is safe on every startup.
"""

import logging
from datetime import datetime, timedelta, timezone

from src.db.repositories.base import TradeRepository, UserRepository, build_trade
from src.schemas.trade import Comment, TradeCreate
from src.services.valuation import value_at_expiration

logger = logging.getLogger(__name__)


DEMO_USERS = [
    {"id": "user1", "username": "alex_trader", "display_name": "Alex Chen"},
    {"id": "user2", "username": "maria_options", "display_name": "Maria Rodriguez"},
    {"id": "user3", "username": "john_spread", "display_name": "John Smith"},
    {"id": "guest", "username": "guest", "display_name": "Guest Trader"},
]


# (trade id, owner, age in seconds, likes, underlying price at expiration, terms)
DEMO_TRADES = [
    (
        "trade1", "user1", 86400, ["user2", "user3"], None,
        {
            "ticker": "AAPL",
            "strategy": "BULL_CALL_SPREAD",
            "status": "CLOSED",
            "legs": [
                {"type": "CALL", "action": "BUY", "strike": "180", "expiration": "2025-02-21", "quantity": 1, "premium": "5.20"},
                {"type": "CALL", "action": "SELL", "strike": "190", "expiration": "2025-02-21", "quantity": 1, "premium": "2.30"},
            ],
            "entry_price": "2.90",
            "exit_price": "6.50",
            "quantity": 5,
            "entry_date": "2025-01-10",
            "exit_date": "2025-01-14",
            "notes": "Played the earnings run-up. Closed early to lock in profits.",
            "max_profit": "500",
            "max_loss": "145",
            "shared": True,
        },
    ),
    (
        "trade2", "user2", 43200, ["user1"], None,
        {
            "ticker": "TSLA",
            "strategy": "IRON_CONDOR",
            "legs": [
                {"type": "PUT", "action": "SELL", "strike": "200", "expiration": "2025-02-07", "quantity": 1, "premium": "3.50"},
                {"type": "PUT", "action": "BUY", "strike": "190", "expiration": "2025-02-07", "quantity": 1, "premium": "1.80"},
                {"type": "CALL", "action": "SELL", "strike": "250", "expiration": "2025-02-07", "quantity": 1, "premium": "4.20"},
                {"type": "CALL", "action": "BUY", "strike": "260", "expiration": "2025-02-07", "quantity": 1, "premium": "2.10"},
            ],
            "entry_price": "3.80",
            "quantity": 2,
            "entry_date": "2025-01-13",
            "notes": "Expecting sideways action after the earnings move. Playing the IV crush.",
            "max_profit": "760",
            "max_loss": "1240",
            "shared": True,
        },
    ),
    (
        "trade3", "user3", 172800, [], "485",
        {
            "ticker": "SPY",
            "strategy": "LONG_PUT",
            "status": "CLOSED",
            "legs": [
                {"type": "PUT", "action": "BUY", "strike": "470", "expiration": "2025-01-31", "quantity": 3, "premium": "8.50"},
            ],
            "entry_price": "8.50",
            "exit_price": "2.10",
            "quantity": 3,
            "entry_date": "2025-01-08",
            "exit_date": "2025-01-12",
            "notes": "Hedging my long portfolio. Market didn't drop as expected.",
        },
    ),
    (
        "trade4", "user1", 3600, ["user2", "user3", "guest"], None,
        {
            "ticker": "NVDA",
            "strategy": "LONG_CALL",
            "legs": [
                {"type": "CALL", "action": "BUY", "strike": "550", "expiration": "2025-03-21", "quantity": 2, "premium": "45.00"},
            ],
            "entry_price": "45.00",
            "quantity": 2,
            "entry_date": "2025-01-14",
            "notes": "AI hype continues. Betting on earnings beat.",
            "shared": True,
        },
    ),
    (
        "trade5", "guest", 7200, [], None,
        {
            "ticker": "AMD",
            "strategy": "COVERED_CALL",
            "legs": [
                {"type": "STOCK", "action": "BUY", "quantity": 100},
                {"type": "CALL", "action": "SELL", "strike": "180", "expiration": "2025-02-14", "quantity": 1, "premium": "3.25"},
            ],
            "entry_price": "175.00",
            "quantity": 1,
            "entry_date": "2025-01-12",
            "notes": "Selling premium on my AMD shares",
        },
    ),
    (
        "trade6", "guest", 345600, ["user1", "user2"], "520",
        {
            "ticker": "META",
            "strategy": "LONG_CALL",
            "status": "CLOSED",
            "legs": [
                {"type": "CALL", "action": "BUY", "strike": "500", "expiration": "2025-01-31", "quantity": 2, "premium": "12.50"},
            ],
            "entry_price": "12.50",
            "exit_price": "22.00",
            "quantity": 2,
            "entry_date": "2025-01-05",
            "exit_date": "2025-01-11",
            "notes": "Quick earnings play, nailed it!",
            "shared": True,
        },
    ),
]


# (comment id, trade id, author, age in seconds, content)
DEMO_COMMENTS = [
    ("c1", "trade1", "user2", 80000, "Nice trade! What made you exit early?"),
    ("c2", "trade1", "user1", 79000, "Thanks! Saw some resistance at 188 and didn't want to risk theta decay."),
    ("c3", "trade2", "user3", 40000, "Bold move with this IV. Keep us posted!"),
    ("c4", "trade4", "user2", 3000, "NVDA has been on fire! Good timing."),
    ("c5", "trade4", "user3", 2500, "These premiums are insane though"),
    ("c6", "trade4", "user1", 2000, "Yeah, but NVDA always surprises. Worth the premium."),
]


async def seed_demo_data(
    trades: TradeRepository,
    users: UserRepository,
    now: datetime | None = None,
) -> bool:
    """
    Load the demo users, trades and comments.

    Returns:
        True if data was written, False if the store was already populated
    """
    if await users.list_users():
        logger.info("Demo seed skipped: users already present")
        return False

    now = now or datetime.now(timezone.utc)

    for user in DEMO_USERS:
        await users.create_user(
            username=user["username"],
            display_name=user["display_name"],
            password_hash=None,
            user_id=user["id"],
        )

    for trade_id, owner, age, likes, expiration_price, terms in DEMO_TRADES:
        trade = build_trade(
            TradeCreate.model_validate(terms),
            user_id=owner,
            trade_id=trade_id,
            created_at=now - timedelta(seconds=age),
        )
        trade = trade.model_copy(update={"likes": list(likes)})
        await trades.create_trade(trade)
        if expiration_price is not None:
            await trades.update_expiration_data(trade_id, value_at_expiration(trade, expiration_price))

    # create_comment keeps comment_count in step with the stored comments
    for comment_id, trade_id, author, age, content in DEMO_COMMENTS:
        await trades.create_comment(Comment(
            id=comment_id,
            trade_id=trade_id,
            user_id=author,
            content=content,
            created_at=now - timedelta(seconds=age),
        ))

    logger.info(
        f"Seeded demo data: {len(DEMO_USERS)} users, {len(DEMO_TRADES)} trades, "
        f"{len(DEMO_COMMENTS)} comments"
    )
    return True
