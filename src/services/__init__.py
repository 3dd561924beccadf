"""
Service module exports.
Import individual modules directly to avoid circular imports.

Example:
    from src.services.valuation import compute_realized_pnl
    from src.services.position_chain import PositionChainManager
"""

__all__ = [
    "strategy_catalog",
    "valuation",
    "analytics_service",
    "position_chain",
    "trade_service",
    "quote_service",
]
