"""
Strategy catalog: static registry of the option strategies a trade can use.
Maps each strategy identifier to its display metadata and expected leg count.
"""

from dataclasses import dataclass
from enum import Enum


class Strategy(str, Enum):
    """Supported trade strategies."""
    # Simple
    LONG_CALL = "LONG_CALL"
    LONG_PUT = "LONG_PUT"
    STOCK = "STOCK"
    # Vertical spreads
    BULL_CALL_SPREAD = "BULL_CALL_SPREAD"
    BEAR_CALL_SPREAD = "BEAR_CALL_SPREAD"
    BULL_PUT_SPREAD = "BULL_PUT_SPREAD"
    BEAR_PUT_SPREAD = "BEAR_PUT_SPREAD"
    # Multi-leg
    IRON_CONDOR = "IRON_CONDOR"
    IRON_BUTTERFLY = "IRON_BUTTERFLY"
    LONG_STRADDLE = "LONG_STRADDLE"
    LONG_STRANGLE = "LONG_STRANGLE"
    CALENDAR_SPREAD = "CALENDAR_SPREAD"
    DIAGONAL_SPREAD = "DIAGONAL_SPREAD"
    BUTTERFLY_SPREAD = "BUTTERFLY_SPREAD"
    COVERED_CALL = "COVERED_CALL"
    PROTECTIVE_PUT = "PROTECTIVE_PUT"


class StrategyCategory(str, Enum):
    SIMPLE = "simple"
    VERTICAL = "vertical"
    ADVANCED = "advanced"


class AdjustmentType(str, Enum):
    """Role a trade plays inside its position chain."""
    OPEN = "OPEN"
    ROLL = "ROLL"
    ADJUST = "ADJUST"
    CLOSE_OUT = "CLOSE_OUT"


@dataclass(frozen=True)
class StrategyInfo:
    """Display metadata for one strategy."""
    name: str
    emoji: str
    legs: int
    category: StrategyCategory


@dataclass(frozen=True)
class AdjustmentInfo:
    name: str
    description: str


STRATEGIES: dict[Strategy, StrategyInfo] = {
    Strategy.LONG_CALL: StrategyInfo("Long Call", "📈", 1, StrategyCategory.SIMPLE),
    Strategy.LONG_PUT: StrategyInfo("Long Put", "📉", 1, StrategyCategory.SIMPLE),
    Strategy.STOCK: StrategyInfo("Stock", "💰", 1, StrategyCategory.SIMPLE),
    Strategy.BULL_CALL_SPREAD: StrategyInfo("Bull Call Spread", "🐂", 2, StrategyCategory.VERTICAL),
    Strategy.BEAR_CALL_SPREAD: StrategyInfo("Bear Call Spread", "🐻", 2, StrategyCategory.VERTICAL),
    Strategy.BULL_PUT_SPREAD: StrategyInfo("Bull Put Spread", "🐂", 2, StrategyCategory.VERTICAL),
    Strategy.BEAR_PUT_SPREAD: StrategyInfo("Bear Put Spread", "🐻", 2, StrategyCategory.VERTICAL),
    Strategy.IRON_CONDOR: StrategyInfo("Iron Condor", "🦅", 4, StrategyCategory.ADVANCED),
    Strategy.IRON_BUTTERFLY: StrategyInfo("Iron Butterfly", "🦋", 4, StrategyCategory.ADVANCED),
    Strategy.LONG_STRADDLE: StrategyInfo("Long Straddle", "💥", 2, StrategyCategory.ADVANCED),
    Strategy.LONG_STRANGLE: StrategyInfo("Long Strangle", "⚡", 2, StrategyCategory.ADVANCED),
    Strategy.CALENDAR_SPREAD: StrategyInfo("Calendar Spread", "📅", 2, StrategyCategory.ADVANCED),
    Strategy.DIAGONAL_SPREAD: StrategyInfo("Diagonal Spread", "📐", 2, StrategyCategory.ADVANCED),
    Strategy.BUTTERFLY_SPREAD: StrategyInfo("Butterfly Spread", "🦋", 3, StrategyCategory.ADVANCED),
    Strategy.COVERED_CALL: StrategyInfo("Covered Call", "☂️", 2, StrategyCategory.ADVANCED),
    Strategy.PROTECTIVE_PUT: StrategyInfo("Protective Put", "🛡️", 2, StrategyCategory.ADVANCED),
}

ADJUSTMENT_TYPES: dict[AdjustmentType, AdjustmentInfo] = {
    AdjustmentType.OPEN: AdjustmentInfo("New Position", "Opening a new position"),
    AdjustmentType.ROLL: AdjustmentInfo(
        "Roll",
        "Closing existing position and opening new one at different strike/expiration",
    ),
    AdjustmentType.ADJUST: AdjustmentInfo("Adjustment", "Modifying an existing position (adding/reducing)"),
    AdjustmentType.CLOSE_OUT: AdjustmentInfo("Close Out", "Final closing of a position"),
}

# Shares per option contract
OPTION_CONTRACT_MULTIPLIER = 100


def get_strategy_info(strategy: Strategy | str) -> StrategyInfo:
    """
    Look up catalog metadata for a strategy.

    Raises:
        ValueError: If the identifier is not in the catalog
    """
    return STRATEGIES[Strategy(strategy)]


def expected_leg_count(strategy: Strategy | str) -> int:
    return get_strategy_info(strategy).legs


def contract_multiplier(strategy: Strategy | str) -> int:
    """Per-share pricing for stock, 100 shares per contract for everything else."""
    return 1 if Strategy(strategy) == Strategy.STOCK else OPTION_CONTRACT_MULTIPLIER


def strategies_by_category() -> dict[StrategyCategory, list[Strategy]]:
    """Group strategies for pickers, preserving catalog order."""
    grouped: dict[StrategyCategory, list[Strategy]] = {c: [] for c in StrategyCategory}
    for strategy, info in STRATEGIES.items():
        grouped[info.category].append(strategy)
    return grouped
