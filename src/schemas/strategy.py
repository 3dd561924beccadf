"""
Strategy catalog bodies, used by trade entry forms.
"""

from pydantic import BaseModel

from src.services.strategy_catalog import AdjustmentType, Strategy, StrategyCategory


class StrategyEntry(BaseModel):
    key: Strategy
    name: str
    emoji: str
    legs: int
    category: StrategyCategory
    multiplier: int


class AdjustmentEntry(BaseModel):
    key: AdjustmentType
    name: str
    description: str


class StrategyCatalog(BaseModel):
    """Strategies grouped by category in catalog order, plus chain adjustment types."""
    categories: dict[StrategyCategory, list[StrategyEntry]]
    adjustment_types: list[AdjustmentEntry]
