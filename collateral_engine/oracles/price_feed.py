"""Price feed adapter — validates untrusted quotes before valuation."""
from __future__ import annotations

import logging
import time
from typing import Callable

from ..constants import MAX_PRICE_DEVIATION, PRICE_DECIMALS, STALENESS_THRESHOLD
from ..errors import (
    FeedNotFound,
    InvalidPrice,
    Paused,
    PriceDeviationTooHigh,
    StalePrice,
    Unauthorized,
)
from ..interfaces.admin import Authorizer
from ..interfaces.price_source import PriceSource
from ..models import PriceQuote
from ..valuation import validate_price_deviation

logger = logging.getLogger(__name__)


def normalize_price(price: int, decimals: int, target_decimals: int = PRICE_DECIMALS) -> int:
    """Rescale a fixed-point price to ``target_decimals``, truncating."""
    if decimals >= target_decimals:
        return price // 10 ** (decimals - target_decimals)
    return price * 10 ** (target_decimals - decimals)


class PriceFeedAdapter:
    """Wraps registered price sources and returns validated, normalized prices.

    Reads fail with ``Paused`` while the circuit breaker is set, with
    ``FeedNotFound`` for unregistered assets, ``InvalidPrice`` for
    non-positive prices or quotes dated in the future, ``StalePrice`` for
    quotes older than the staleness threshold, and ``PriceDeviationTooHigh``
    when a secondary source is registered and disagrees with the primary one.
    """

    def __init__(
        self,
        gate: Authorizer,
        clock: Callable[[], float] = time.time,
        staleness_threshold: int = STALENESS_THRESHOLD,
        max_deviation: int = MAX_PRICE_DEVIATION,
    ) -> None:
        self._gate = gate
        self._clock = clock
        self.staleness_threshold = staleness_threshold
        self.max_deviation = max_deviation
        self._feeds: dict[str, PriceSource] = {}
        self._secondary: dict[str, PriceSource] = {}
        self._paused = False

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str) -> None:
        if not self._gate.is_authorized(caller):
            raise Unauthorized(f"{caller} is not allowed to configure price feeds")

    def add_price_feed(self, caller: str, asset: str, source: PriceSource) -> None:
        self._require_admin(caller)
        self._feeds[asset] = source
        logger.info("Price feed registered for %s", asset)

    def add_secondary_feed(self, caller: str, asset: str, source: PriceSource) -> None:
        self._require_admin(caller)
        self._secondary[asset] = source
        logger.info("Secondary price feed registered for %s", asset)

    def set_paused(self, caller: str, paused: bool) -> None:
        self._require_admin(caller)
        self._paused = paused
        logger.warning("Price feed %s", "PAUSED" if paused else "resumed")

    @property
    def paused(self) -> bool:
        return self._paused

    def has_feed(self, asset: str) -> bool:
        return asset in self._feeds

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _validated(self, asset: str, source: PriceSource) -> int:
        quote: PriceQuote = source.latest_quote(asset)

        if quote.price <= 0:
            raise InvalidPrice(f"{asset}: reported price {quote.price} is not positive")

        age = int(self._clock()) - quote.updated_at
        if age < 0:
            raise InvalidPrice(f"{asset}: quote is timestamped {-age}s in the future")
        if age > self.staleness_threshold:
            raise StalePrice(
                f"{asset}: quote is {age}s old (limit {self.staleness_threshold}s)"
            )

        price = normalize_price(quote.price, quote.decimals)
        if price <= 0:
            raise InvalidPrice(f"{asset}: price {quote.price}e-{quote.decimals} rounds to zero")
        return price

    def get_price(self, asset: str) -> int:
        """Return the validated price of ``asset`` with ``PRICE_DECIMALS`` decimals."""
        if self._paused:
            raise Paused("Price feeds are paused")

        source = self._feeds.get(asset)
        if source is None:
            raise FeedNotFound(f"No price feed registered for {asset}")

        price = self._validated(asset, source)

        secondary = self._secondary.get(asset)
        if secondary is not None:
            reference = self._validated(asset, secondary)
            if not self.validate_price_deviation(price, reference):
                raise PriceDeviationTooHigh(
                    f"{asset}: primary {price} and secondary {reference} differ by more "
                    f"than {self.max_deviation} bp"
                )

        logger.debug("Price %s = %d", asset, price)
        return price

    def validate_price_deviation(self, price1: int, price2: int) -> bool:
        return validate_price_deviation(price1, price2, self.max_deviation)
