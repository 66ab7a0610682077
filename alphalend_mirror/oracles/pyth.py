"""Pyth Network price oracle service."""
from __future__ import annotations

import logging
import ssl
from decimal import Decimal

import aiohttp
import certifi

from ..config import PythConfig
from ..models import PriceData
from ..protocols.alphalend.parser import normalize_coin_type

logger = logging.getLogger(__name__)


def _feed_key(feed_id: str) -> str:
    """Hermes reports feed ids lowercase and without the ``0x`` prefix."""
    feed_id = feed_id.lower()
    return feed_id[2:] if feed_id.startswith("0x") else feed_id


def parse_price_item(item: dict, coin_type: str) -> PriceData:
    """Build PriceData from one Hermes ``parsed`` entry: ``price * 10**expo``."""
    price_data = item.get("price", {})
    expo = int(price_data.get("expo", 0))
    scale = Decimal(10) ** expo
    return PriceData(
        coin_type=coin_type,
        price=Decimal(str(price_data.get("price", 0))) * scale,
        expo=expo,
        conf=Decimal(str(price_data.get("conf", 0))) * scale,
        publish_time=int(price_data.get("publish_time", 0)),
    )


class PythOracle:
    """Fetch prices from Pyth Network (Hermes) keyed by coin type."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = {
            normalize_coin_type(coin_type): feed_id
            for coin_type, feed_id in config.feeds.items()
        }

    async def fetch_prices(
        self, coin_types: list[str] | None = None
    ) -> dict[str, PriceData]:
        """Fetch current prices from Pyth Network.

        Args:
            coin_types: Optional list of coin types to fetch. If None, fetches
                all configured feeds. Coin types without a configured feed are
                left out of the result rather than priced at zero.
        """
        prices: dict[str, PriceData] = {}

        feeds = self.price_feeds
        if coin_types is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in coin_types}
            for coin_type in coin_types:
                if coin_type not in self.price_feeds:
                    logger.warning("No Pyth feed configured for %s", coin_type)

        feed_ids = sorted(set(feeds.values()))
        if not feed_ids:
            return prices

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
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Several coin types may share one feed (e.g. BTC wrappers)
                    id_to_coin_types: dict[str, list[str]] = {}
                    for coin_type, feed_id in feeds.items():
                        id_to_coin_types.setdefault(_feed_key(feed_id), []).append(
                            coin_type
                        )

                    for item in parsed:
                        feed_id = _feed_key(str(item.get("id", "")))
                        for coin_type in id_to_coin_types.get(feed_id, []):
                            prices[coin_type] = parse_price_item(item, coin_type)

                    logger.info("Fetched %d prices from Pyth Network", len(prices))
                    for coin_type, price in sorted(prices.items()):
                        logger.debug("  %s: $%.4f", coin_type, float(price.price))

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
