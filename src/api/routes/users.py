"""
User and statistics routes.
"""

from fastapi import APIRouter

from src.api.deps import CurrentUser, TradeServiceDep, Users
from src.schemas.auth import User
from src.schemas.dashboard import UserStats


router = APIRouter(tags=["Users"])


@router.get("/users", response_model=list[User])
async def list_users(users: Users) -> list[User]:
    return await users.list_users()


@router.get("/users/me", response_model=User)
async def get_me(current_user: CurrentUser) -> User:
    """
    Returns the authenticated user's profile.
    """
    return current_user


@router.get("/stats", response_model=UserStats)
async def get_stats(service: TradeServiceDep, user_id: str | None = None) -> UserStats:
    """
    Returns journal statistics over all trades, or one user's trades
    when user_id is given. Win rate is a percentage.
    """
    return await service.get_stats(user_id)
