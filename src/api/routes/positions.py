"""
Position chain routes.
"""

from fastapi import APIRouter

from src.api.deps import ChainManager, CurrentUserId
from src.schemas.trade import Trade


router = APIRouter(prefix="/positions", tags=["Positions"])


@router.get("/open", response_model=list[Trade])
async def get_open_positions(chains: ChainManager, user_id: CurrentUserId) -> list[Trade]:
    """
    Returns the caller's open trades, newest first.
    These are the trades that can be rolled.
    """
    return await chains.get_open_positions_for_user(user_id)


@router.get("/{position_id}/trades", response_model=list[Trade])
async def get_position_trades(position_id: str, chains: ChainManager) -> list[Trade]:
    """
    Returns every trade in a position chain, oldest first.
    An unknown position id yields an empty list.
    """
    return await chains.get_position_chain(position_id)
