"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass

from .constants import BASIS_POINTS, HEALTH_FACTOR_PRECISION


@dataclass(frozen=True)
class Position:
    """A participant's collateral and debt, in the smallest unit of each asset."""

    collateral_amount: int = 0
    debt_amount: int = 0

    def __post_init__(self) -> None:
        if self.collateral_amount < 0 or self.debt_amount < 0:
            raise ValueError("Position amounts must be non-negative")

    @property
    def is_empty(self) -> bool:
        return self.collateral_amount == 0 and self.debt_amount == 0


EMPTY_POSITION = Position()


@dataclass(frozen=True)
class CollateralConfig:
    """Risk parameters for a supported collateral asset (basis points)."""

    is_supported: bool = False
    liquidation_threshold: int = 0
    liquidation_penalty: int = 0

    def __post_init__(self) -> None:
        for name in ("liquidation_threshold", "liquidation_penalty"):
            value = getattr(self, name)
            if not 0 <= value <= BASIS_POINTS:
                raise ValueError(f"{name} must be within 0..{BASIS_POINTS} bp, got {value}")


@dataclass(frozen=True)
class AssetScales:
    """Decimal precision of the two assets of a market and of the price."""

    collateral_decimals: int = 18
    debt_decimals: int = 6
    price_decimals: int = 8


@dataclass(frozen=True)
class PriceQuote:
    """One round reported by a price source.

    ``price`` is a fixed-point integer with ``decimals`` digits after the
    point; ``updated_at`` is a unix timestamp in seconds.
    """

    price: int
    updated_at: int
    decimals: int = 8
    round_id: int = 0


@dataclass(frozen=True)
class LiquidationResult:
    collateral_seized: int
    debt_repaid: int
    penalty: int = 0

    @property
    def total_payout(self) -> int:
        return self.collateral_seized + self.penalty


@dataclass(frozen=True)
class PositionHealth:
    """Snapshot of one position's valuation, used for reports."""

    position_id: int
    participant: str
    collateral_amount: int
    debt_amount: int
    health_factor: int

    @property
    def is_liquidatable(self) -> bool:
        return self.health_factor < HEALTH_FACTOR_PRECISION
