"""Manually driven, round-indexed price source."""
from __future__ import annotations

import time
from typing import Callable

from ..errors import FeedNotFound
from ..models import PriceQuote


class ManualPriceSource:
    """Price source whose rounds are pushed by hand (tests, dry runs, fallbacks).

    Every ``set_price`` call opens a new round; earlier rounds stay queryable
    through ``quote_at_round``.
    """

    def __init__(self, decimals: int = 8, clock: Callable[[], float] = time.time) -> None:
        self.decimals = decimals
        self._clock = clock
        self._rounds: dict[str, list[PriceQuote]] = {}

    def set_price(self, asset: str, price: int, updated_at: int | None = None) -> PriceQuote:
        rounds = self._rounds.setdefault(asset, [])
        quote = PriceQuote(
            price=price,
            updated_at=int(self._clock()) if updated_at is None else updated_at,
            decimals=self.decimals,
            round_id=len(rounds) + 1,
        )
        rounds.append(quote)
        return quote

    def latest_quote(self, asset: str) -> PriceQuote:
        rounds = self._rounds.get(asset)
        if not rounds:
            raise FeedNotFound(f"No price rounds for {asset}")
        return rounds[-1]

    def quote_at_round(self, asset: str, round_id: int) -> PriceQuote:
        rounds = self._rounds.get(asset, [])
        if not 1 <= round_id <= len(rounds):
            raise FeedNotFound(f"No round {round_id} for {asset}")
        return rounds[round_id - 1]
