"""Pyth Network price source."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import FeedNotFound
from ..models import PriceQuote

logger = logging.getLogger(__name__)


def parse_price_update(item: dict) -> PriceQuote:
    """Convert one Hermes ``parsed`` entry into a quote.

    Hermes reports ``price`` as an integer string with exponent ``expo``,
    e.g. {"price": "200000000000", "expo": -8} -> 2000.00000000.
    """
    price_data = item.get("price", {})
    price_raw = int(price_data.get("price", 0))
    expo = int(price_data.get("expo", 0))
    publish_time = int(price_data.get("publish_time", 0))

    if expo > 0:
        return PriceQuote(price=price_raw * 10**expo, updated_at=publish_time, decimals=0)
    return PriceQuote(price=price_raw, updated_at=publish_time, decimals=-expo)


class PythPriceSource:
    """Caches the latest Pyth quotes; ``refresh`` pulls them from Hermes.

    ``latest_quote`` never touches the network, so engine operations run to
    completion without suspending.
    """

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)
        self._quotes: dict[str, PriceQuote] = {}

    def latest_quote(self, asset: str) -> PriceQuote:
        quote = self._quotes.get(asset)
        if quote is None:
            raise FeedNotFound(f"No Pyth quote cached for {asset}")
        return quote

    async def refresh(self, symbols: list[str] | None = None) -> dict[str, PriceQuote]:
        """Fetch current quotes from Pyth Network and update the cache.

        Args:
            symbols: Optional list of symbols to fetch. If None, fetches all
                     configured feeds.

        Returns the quotes updated by this call. HTTP and network failures are
        logged and leave the cache untouched; the staleness check downstream
        rejects quotes that stop updating.
        """
        updated: dict[str, PriceQuote] = {}

        feeds = self.price_feeds
        if symbols is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in symbols}

        feed_ids = list(set(feeds.values()))
        if not feed_ids:
            return updated

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return updated

                    data = await response.json()
        except (aiohttp.ClientError, OSError) as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return updated

        id_to_assets: dict[str, list[str]] = {}
        for asset, feed_id in feeds.items():
            id_to_assets.setdefault(feed_id.lower().removeprefix("0x"), []).append(asset)

        for item in data.get("parsed", []):
            feed_id = str(item.get("id", "")).lower().removeprefix("0x")
            assets = id_to_assets.get(feed_id)
            if not assets:
                continue
            quote = parse_price_update(item)
            for asset in assets:
                updated[asset] = quote

        self._quotes.update(updated)

        logger.info("Fetched prices from Pyth Network:")
        for asset, quote in sorted(updated.items()):
            logger.info(
                "  %s: %d e-%d (published %d)",
                asset, quote.price, quote.decimals, quote.updated_at,
            )

        return updated
