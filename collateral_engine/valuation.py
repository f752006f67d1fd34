"""Pure valuation functions for positions — no I/O, integer arithmetic only.

Every division truncates toward zero. All operands are non-negative, so
Python's floor division gives the same result.
"""
from __future__ import annotations

from .constants import (
    BASIS_POINTS,
    HEALTH_FACTOR_PRECISION,
    MAX_HEALTH_FACTOR,
    MAX_PRICE_DEVIATION,
)
from .models import AssetScales, CollateralConfig, Position


def collateral_value(collateral_amount: int, price: int, price_decimals: int) -> int:
    """Value of the collateral in the stable unit, at collateral precision.

    Examples:
        10 ETH (18 dp) at 2000.00000000 (8 dp) -> 20000 * 10**18
    """
    return collateral_amount * price // 10**price_decimals


def weighted_collateral(value: int, liquidation_threshold: int) -> int:
    """Part of the collateral value that counts as borrowing power."""
    return value * liquidation_threshold // BASIS_POINTS


def _scale_factors(scales: AssetScales) -> tuple[int, int]:
    """Multipliers bringing (collateral value, debt) to one common precision."""
    diff = scales.collateral_decimals - scales.debt_decimals
    if diff >= 0:
        return 1, 10**diff
    return 10**-diff, 1


def normalized_debt(debt_amount: int, scales: AssetScales) -> int:
    """Debt expressed at the precision collateral values are compared in."""
    _, debt_factor = _scale_factors(scales)
    return debt_amount * debt_factor


def health_factor(
    position: Position,
    price: int,
    config: CollateralConfig,
    scales: AssetScales,
) -> int:
    """Health factor scaled x100.

    health_factor = collateral * price * threshold * 100 / (debt * 10000)

    A position without debt returns ``MAX_HEALTH_FACTOR`` whatever its
    collateral or the price.
    """
    if position.debt_amount == 0:
        return MAX_HEALTH_FACTOR

    collateral_factor, _ = _scale_factors(scales)
    value = collateral_value(position.collateral_amount, price, scales.price_decimals)
    weighted = weighted_collateral(value, config.liquidation_threshold) * collateral_factor
    debt = normalized_debt(position.debt_amount, scales)
    return weighted * HEALTH_FACTOR_PRECISION // debt


def is_liquidatable(factor: int) -> bool:
    return factor < HEALTH_FACTOR_PRECISION


def liquidation_penalty(collateral_amount: int, penalty_bp: int) -> int:
    """Bonus paid to the liquidator on top of the seized collateral."""
    return collateral_amount * penalty_bp // BASIS_POINTS


def estimate_profit(
    collateral_amount: int,
    price: int,
    penalty_bp: int,
    price_decimals: int,
) -> int:
    """Expected liquidation profit, in collateral units.

    profit_usd = collateral_value * penalty / 10000
    profit     = profit_usd * 10**price_decimals / price

    Both conversions share one fixed-point scale, so the result is computed
    with a single truncating division at the end.
    """
    if price <= 0:
        return 0
    numerator = collateral_amount * price * penalty_bp
    return numerator // (BASIS_POINTS * price)


def validate_price_deviation(
    price1: int, price2: int, max_deviation: int = MAX_PRICE_DEVIATION
) -> bool:
    """True if ``price2`` is within ``max_deviation`` bp of ``price1``."""
    if price1 <= 0 or price2 <= 0:
        return False
    deviation = abs(price1 - price2) * BASIS_POINTS // price1
    return deviation <= max_deviation
