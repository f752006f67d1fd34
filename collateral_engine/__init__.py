"""Collateralized position valuation and liquidation engine."""
from .engine import LendingEngine
from .scanner import LiquidationScanner

__version__ = "0.1.0"

__all__ = ["LendingEngine", "LiquidationScanner"]
