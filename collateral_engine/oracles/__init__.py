"""Price oracle modules."""
from .manual import ManualPriceSource
from .price_feed import PriceFeedAdapter
from .pyth import PythPriceSource

__all__ = ["ManualPriceSource", "PriceFeedAdapter", "PythPriceSource"]
