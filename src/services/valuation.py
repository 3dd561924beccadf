"""
Trade valuation engine.

Pure functions computing realized P&L, P&L percent and the theoretical
value of a closed trade at option expiration ("missed P&L"). Nothing in
this module performs I/O; the underlying price used for expiration
valuation is supplied by the caller.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from src.core.exceptions import ValidationError
from src.schemas.trade import LegAction, LegType, Trade, TradeLeg, TradeStatus
from src.services.strategy_catalog import OPTION_CONTRACT_MULTIPLIER, Strategy, contract_multiplier


logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Scale of the Numeric(18,6) money columns
STORED_PRECISION = Decimal("0.000001")

# Fields that go stale whenever a trade's terms change
EXPIRATION_FIELDS_RESET: dict[str, None] = {
    "expiration_stock_price": None,
    "theoretical_exit_value": None,
    "missed_pnl": None,
}


@dataclass(frozen=True)
class RealizedPnl:
    """Realized P&L pair; both values are None while the trade is unrealized."""
    pnl: Decimal | None
    pnl_percent: Decimal | None


@dataclass(frozen=True)
class ExpirationValuation:
    """Theoretical outcome of holding a closed trade until expiration."""
    stock_price: Decimal
    theoretical_exit_value: Decimal
    missed_pnl: Decimal


UNREALIZED = RealizedPnl(pnl=None, pnl_percent=None)


def _to_decimal(value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_realized_pnl(
    entry_price: Decimal | float,
    exit_price: Decimal | float,
    quantity: int,
    strategy: Strategy | str,
) -> RealizedPnl:
    """
    Compute realized P&L for a closed trade.

    Stock is priced per share (multiplier 1); every option strategy is
    priced per contract (multiplier 100).

    Args:
        entry_price: Price paid/received per unit at entry
        exit_price: Price per unit at exit
        quantity: Contracts, or shares for STOCK
        strategy: Catalog strategy identifier

    Returns:
        RealizedPnl with pnl = proceeds - cost and pnl_percent = pnl / cost * 100,
        or pnl_percent = 0 when cost is not positive
    """
    multiplier = contract_multiplier(strategy)
    cost = _to_decimal(entry_price) * quantity * multiplier
    proceeds = _to_decimal(exit_price) * quantity * multiplier
    pnl = proceeds - cost
    pnl_percent = (pnl / cost) * 100 if cost > 0 else ZERO
    return RealizedPnl(pnl=pnl, pnl_percent=pnl_percent)


def realized_pnl_for(
    status: TradeStatus,
    entry_price: Decimal,
    exit_price: Decimal | None,
    quantity: int,
    strategy: Strategy | str,
) -> RealizedPnl:
    """
    Realized P&L for a trade in any state.

    Returns UNREALIZED (both values None) unless the trade is CLOSED and
    has a finite exit price.
    """
    if status != TradeStatus.CLOSED or exit_price is None:
        return UNREALIZED
    if not _to_decimal(exit_price).is_finite():
        return UNREALIZED
    return compute_realized_pnl(entry_price, exit_price, quantity, strategy)


def leg_intrinsic_value(leg_type: LegType, strike: Decimal, price: Decimal) -> Decimal:
    """In-the-money value of one option at the given underlying price."""
    if leg_type == LegType.CALL:
        return max(ZERO, price - strike)
    if leg_type == LegType.PUT:
        return max(ZERO, strike - price)
    raise ValueError(f"Stock legs have no intrinsic value: {leg_type}")


def expiring_option_legs(trade: Trade) -> list[TradeLeg]:
    """
    The option legs an expiration valuation is based on.

    Raises:
        ValidationError: If the trade is not closed or has no option legs
            with an expiration date
    """
    if trade.status != TradeStatus.CLOSED:
        raise ValidationError("Trade must be closed to calculate expiration value")

    option_legs = trade.option_legs_with_expiration
    if not option_legs:
        raise ValidationError("No option legs with expiration")
    return option_legs


def compute_theoretical_expiration_value(trade: Trade, current_price: Decimal | float) -> Decimal:
    """
    Theoretical per-unit value of a closed position at expiration.

    Each option leg with a strike and expiration contributes its intrinsic
    value, positive when bought and negative when sold, weighted by its own
    quantity. The sum is normalised by the quantity of the first option leg
    with an expiration, which assumes all legs share one contract ratio.

    Args:
        trade: A CLOSED trade
        current_price: Underlying price at (or after) expiration

    Returns:
        Theoretical value per unit of the whole position

    Raises:
        ValidationError: If the trade is not closed or has no option legs
            with an expiration date
    """
    option_legs = expiring_option_legs(trade)
    price = _to_decimal(current_price)
    total = ZERO
    for leg in option_legs:
        if leg.strike is None:
            continue
        intrinsic = leg_intrinsic_value(leg.type, leg.strike, price)
        signed = intrinsic if leg.action == LegAction.BUY else -intrinsic
        total += signed * leg.quantity

    return total / (option_legs[0].quantity or 1)


def compute_missed_pnl(
    theoretical_value: Decimal,
    actual_exit_price: Decimal | None,
    quantity: int,
) -> Decimal:
    """
    P&L left on the table by exiting early.

    Positive means holding to expiration would have paid more; negative
    means the early exit avoided a larger loss. The option multiplier is
    always applied here, whatever the strategy.
    """
    exit_price = _to_decimal(actual_exit_price) if actual_exit_price is not None else ZERO
    return (_to_decimal(theoretical_value) - exit_price) * quantity * OPTION_CONTRACT_MULTIPLIER


def value_at_expiration(trade: Trade, current_price: Decimal | float) -> ExpirationValuation:
    """
    Full expiration valuation of a closed trade at an underlying price.

    All three values are rounded to the precision of the money columns,
    and missed P&L is derived from the rounded theoretical value, so both
    storage backends hold identical results.
    """
    price = _to_decimal(current_price).quantize(STORED_PRECISION)
    theoretical = compute_theoretical_expiration_value(trade, price).quantize(STORED_PRECISION)
    missed = compute_missed_pnl(theoretical, trade.exit_price, trade.quantity).quantize(STORED_PRECISION)
    logger.debug(
        f"Expiration valuation for {trade.id} ({trade.ticker} @ {price}): "
        f"theoretical={theoretical} missed={missed}"
    )
    return ExpirationValuation(
        stock_price=price,
        theoretical_exit_value=theoretical,
        missed_pnl=missed,
    )
