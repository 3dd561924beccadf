"""
Trade routes: feeds, trade CRUD, rolls, social actions and expiration
valuation.
"""

from datetime import date

from fastapi import APIRouter, Query, status

from src.api.deps import ChainManager, CurrentUserId, TradeServiceDep
from src.schemas.common import MessageResponse
from src.schemas.trade import (
    Comment,
    CommentCreate,
    ExpirationBatchResult,
    FeedFilter,
    LikeResponse,
    RollRequest,
    RollResponse,
    ShareResponse,
    Trade,
    TradeCreate,
    TradeUpdate,
)


router = APIRouter(prefix="/trades", tags=["Trades"])


@router.get("", response_model=list[Trade])
async def list_trades(
    service: TradeServiceDep,
    feed_filter: FeedFilter = Query(FeedFilter.ALL, alias="filter"),
) -> list[Trade]:
    """
    Returns every trade, newest first.
    """
    return await service.list_trades(feed_filter)


@router.get("/shared", response_model=list[Trade])
async def list_shared_trades(
    service: TradeServiceDep,
    feed_filter: FeedFilter = Query(FeedFilter.ALL, alias="filter"),
) -> list[Trade]:
    """
    Returns the public feed: shared trades only.
    """
    return await service.get_shared_trades(feed_filter)


@router.get("/mine", response_model=list[Trade])
async def list_my_trades(
    service: TradeServiceDep,
    user_id: CurrentUserId,
    feed_filter: FeedFilter = Query(FeedFilter.ALL, alias="filter"),
) -> list[Trade]:
    return await service.get_user_trades(user_id, feed_filter)


@router.get("/expired", response_model=list[Trade])
async def list_expired_trades(
    service: TradeServiceDep,
    today: date | None = None,
) -> list[Trade]:
    """
    Returns closed trades whose options have expired and that have not
    been valued at expiration yet.
    """
    return await service.get_expired_trades(today)


@router.post("/expired/calculate", response_model=ExpirationBatchResult)
async def calculate_expired_trades(
    service: TradeServiceDep,
    user_id: CurrentUserId,
    today: date | None = None,
) -> ExpirationBatchResult:
    """
    Values every trade on the expired worklist against the latest quotes.
    """
    return await service.recalculate_expired(today)


@router.get("/{trade_id}", response_model=Trade)
async def get_trade(trade_id: str, service: TradeServiceDep) -> Trade:
    return await service.get_trade(trade_id)


@router.post("", response_model=Trade, status_code=status.HTTP_201_CREATED)
async def create_trade(
    data: TradeCreate,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> Trade:
    """
    Records a new trade for the caller.
    P&L is computed server-side when the trade is closed.
    """
    return await service.create_trade(user_id, data)


@router.put("/{trade_id}", response_model=Trade)
async def update_trade(
    trade_id: str,
    data: TradeUpdate,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> Trade:
    """
    Replaces the terms of a trade the caller owns.
    Clears any stored expiration valuation.
    """
    return await service.update_trade(trade_id, user_id, data)


@router.delete("/{trade_id}", response_model=MessageResponse)
async def delete_trade(
    trade_id: str,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> MessageResponse:
    await service.delete_trade(trade_id, user_id)
    return MessageResponse(message="Trade deleted")


@router.post("/{trade_id}/roll", response_model=RollResponse, status_code=status.HTTP_201_CREATED)
async def roll_trade(
    trade_id: str,
    data: RollRequest,
    chains: ChainManager,
    user_id: CurrentUserId,
) -> RollResponse:
    """
    Closes an open trade and opens its successor in the same position.

    Returns 409 if the trade was closed by a concurrent request.
    """
    result = await chains.roll_position(trade_id, user_id, data)
    return RollResponse(closed_parent=result.closed_parent, new_trade=result.new_trade)


@router.post("/{trade_id}/share", response_model=ShareResponse)
async def toggle_share(
    trade_id: str,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> ShareResponse:
    shared = await service.toggle_share(trade_id, user_id)
    return ShareResponse(shared=shared)


@router.post("/{trade_id}/like", response_model=LikeResponse)
async def toggle_like(
    trade_id: str,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> LikeResponse:
    liked = await service.toggle_like(trade_id, user_id)
    return LikeResponse(liked=liked)


@router.get("/{trade_id}/comments", response_model=list[Comment])
async def list_comments(trade_id: str, service: TradeServiceDep) -> list[Comment]:
    """
    Returns a trade's comments, oldest first.
    """
    return await service.get_comments(trade_id)


@router.post("/{trade_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    trade_id: str,
    data: CommentCreate,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> Comment:
    return await service.add_comment(trade_id, user_id, data)


@router.post("/{trade_id}/calculate-expiration", response_model=Trade)
async def calculate_expiration(
    trade_id: str,
    service: TradeServiceDep,
    user_id: CurrentUserId,
) -> Trade:
    """
    Values a closed trade at expiration using the latest quote for its
    ticker. Returns 502 when no quote can be obtained.
    """
    return await service.calculate_expiration(trade_id)
