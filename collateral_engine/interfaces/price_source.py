"""Price source protocol — round-based external price data."""
from typing import Protocol

from ..models import PriceQuote


class PriceSource(Protocol):
    """Untrusted source of the latest price round for an asset."""

    def latest_quote(self, asset: str) -> PriceQuote: ...
