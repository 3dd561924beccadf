"""
Shared test configuration.
Environment defaults are set before any application module reads settings.
"""

import os
from datetime import date, datetime, timezone

import pytest

os.environ.setdefault("SECRET_KEY", "test-signing-key-0123456789abcdefghijklmnopqrstuvwxyz")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("DEBUG", "true")
os.environ["ALPHA_VANTAGE_API_KEY"] = ""

from src.schemas.trade import Trade  # noqa: E402


BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_trade(**overrides) -> Trade:
    """
    A closed single-leg long call, overridable field by field.
    """
    data = {
        "id": "t-1",
        "user_id": "user1",
        "ticker": "AAPL",
        "strategy": "LONG_CALL",
        "status": "CLOSED",
        "legs": [
            {
                "type": "CALL",
                "action": "BUY",
                "strike": "100",
                "expiration": "2025-01-31",
                "quantity": 1,
                "premium": "2.00",
            }
        ],
        "entry_price": "2.00",
        "exit_price": "3.00",
        "quantity": 1,
        "entry_date": "2025-01-10",
        "exit_date": "2025-01-12",
        "created_at": BASE_TIME,
    }
    data.update(overrides)
    return Trade.model_validate(data)


@pytest.fixture
def trade_factory():
    """Builds Trade records from keyword overrides."""
    return make_trade


@pytest.fixture
def today() -> date:
    return date(2025, 2, 1)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
