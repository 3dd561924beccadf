"""
API route module exports.
"""

from src.api.routes.auth import router as auth_router
from src.api.routes.health import router as health_router
from src.api.routes.positions import router as positions_router
from src.api.routes.quotes import router as quotes_router
from src.api.routes.strategies import router as strategies_router
from src.api.routes.trades import router as trades_router
from src.api.routes.users import router as users_router

__all__ = [
    "auth_router",
    "health_router",
    "positions_router",
    "quotes_router",
    "strategies_router",
    "trades_router",
    "users_router",
]
