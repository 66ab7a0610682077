"""Protocol-wide totals across all markets."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from ...errors import PriceNotFoundError
from ...models import ZERO, Exclusion, Market, PriceMap, ProtocolStats
from .portfolio import resolve_price, to_usd

logger = logging.getLogger(__name__)


def aggregate(markets: Iterable[Market], prices: PriceMap) -> ProtocolStats:
    """Sum supplied and borrowed USD; markets without a price are skipped."""
    total_supplied_usd = ZERO
    total_borrowed_usd = ZERO
    counted = 0
    excluded: list[Exclusion] = []

    for market in markets:
        try:
            price = resolve_price(market.coin_type, prices)
        except PriceNotFoundError as e:
            logger.warning(
                "No price found for %s, skipping market %s",
                market.coin_type, market.market_id,
            )
            excluded.append(Exclusion(kind="market", entity_id=market.market_id, error=e))
            continue

        total_supplied_usd += to_usd(market.total_supply, market, price)
        total_borrowed_usd += to_usd(market.total_borrow, market, price)
        counted += 1

    return ProtocolStats(
        total_supplied_usd=total_supplied_usd,
        total_borrowed_usd=total_borrowed_usd,
        market_count=counted,
        excluded=tuple(excluded),
    )
