"""
FastAPI dependency injection functions.
Provides reusable dependencies for repositories, services and authentication.
"""

from typing import Annotated, TypeAlias

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from src.core.security import verify_token
from src.core.exceptions import AuthenticationError
from src.db.repositories.base import TradeRepository, UserRepository
from src.schemas.auth import User
from src.services.position_chain import PositionChainManager
from src.services.quote_service import QuoteProvider
from src.services.trade_service import TradeService


security = HTTPBearer(auto_error=False)


def get_trade_repository(request: Request) -> TradeRepository:
    """Returns the trade repository the application was built with."""
    return request.app.state.trade_repository


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def get_quote_provider(request: Request) -> QuoteProvider:
    return request.app.state.quote_provider


def get_trade_service(
    trades: Annotated[TradeRepository, Depends(get_trade_repository)],
    quotes: Annotated[QuoteProvider, Depends(get_quote_provider)],
) -> TradeService:
    return TradeService(trades, quotes)


def get_position_chain_manager(
    trades: Annotated[TradeRepository, Depends(get_trade_repository)],
) -> PositionChainManager:
    return PositionChainManager(trades)


async def get_optional_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """
    Returns the caller's user id from a bearer token, or None when the
    request carries no Authorization header.

    Raises:
        AuthenticationError: If a token is present but invalid or expired
    """
    if credentials is None:
        return None
    payload = verify_token(credentials.credentials)
    return payload["sub"]


async def get_current_user_id(
    user_id: Annotated[str | None, Depends(get_optional_user_id)],
) -> str:
    """
    Requires an authenticated caller.

    Raises:
        AuthenticationError: If no bearer token was supplied
    """
    if user_id is None:
        raise AuthenticationError("Authentication required")
    return user_id


async def get_current_user(
    user_id: Annotated[str, Depends(get_current_user_id)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> User:
    """
    Validates JWT token and returns the authenticated user.

    Raises:
        AuthenticationError: If the token's user no longer exists
    """
    user = await users.get_user(user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


# Type aliases for dependency injection - improves readability and IDE support
Trades: TypeAlias = Annotated[TradeRepository, Depends(get_trade_repository)]
Users: TypeAlias = Annotated[UserRepository, Depends(get_user_repository)]
Quotes: TypeAlias = Annotated[QuoteProvider, Depends(get_quote_provider)]
TradeServiceDep: TypeAlias = Annotated[TradeService, Depends(get_trade_service)]
ChainManager: TypeAlias = Annotated[PositionChainManager, Depends(get_position_chain_manager)]
CurrentUserId: TypeAlias = Annotated[str, Depends(get_current_user_id)]
CurrentUser: TypeAlias = Annotated[User, Depends(get_current_user)]


__all__ = [
    "get_trade_repository",
    "get_user_repository",
    "get_quote_provider",
    "get_trade_service",
    "get_position_chain_manager",
    "get_optional_user_id",
    "get_current_user_id",
    "get_current_user",
    "Trades",
    "Users",
    "Quotes",
    "TradeServiceDep",
    "ChainManager",
    "CurrentUserId",
    "CurrentUser",
]
