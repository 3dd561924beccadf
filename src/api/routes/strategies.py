"""
Strategy catalog route.
"""

from fastapi import APIRouter

from src.schemas.strategy import AdjustmentEntry, StrategyCatalog, StrategyEntry
from src.services.strategy_catalog import (
    ADJUSTMENT_TYPES,
    contract_multiplier,
    expected_leg_count,
    get_strategy_info,
    strategies_by_category,
)


router = APIRouter(prefix="/strategies", tags=["Strategies"])


@router.get("", response_model=StrategyCatalog)
async def get_strategy_catalog() -> StrategyCatalog:
    """
    Returns every supported strategy with its display metadata.
    Leg counts are the usual shape of the strategy; trades are not held to them.
    """
    categories = {
        category: [
            StrategyEntry(
                key=strategy,
                name=get_strategy_info(strategy).name,
                emoji=get_strategy_info(strategy).emoji,
                legs=expected_leg_count(strategy),
                category=category,
                multiplier=contract_multiplier(strategy),
            )
            for strategy in strategies
        ]
        for category, strategies in strategies_by_category().items()
    }
    adjustment_types = [
        AdjustmentEntry(key=key, name=info.name, description=info.description)
        for key, info in ADJUSTMENT_TYPES.items()
    ]
    return StrategyCatalog(categories=categories, adjustment_types=adjustment_types)
