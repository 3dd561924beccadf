"""
Repository exports.
"""

from src.db.repositories.base import TradeRepository, UserRepository, build_trade
from src.db.repositories.memory import InMemoryTradeRepository, InMemoryUserRepository
from src.db.repositories.sql import SqlTradeRepository, SqlUserRepository

__all__ = [
    "TradeRepository",
    "UserRepository",
    "build_trade",
    "InMemoryTradeRepository",
    "InMemoryUserRepository",
    "SqlTradeRepository",
    "SqlUserRepository",
]
