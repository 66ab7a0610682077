"""Price oracle protocol — price feed abstraction."""
from typing import Protocol

from ..models import PriceData


class PriceOracle(Protocol):
    """Abstract interface for fetching prices keyed by coin type."""

    async def fetch_prices(
        self, coin_types: list[str] | None = None
    ) -> dict[str, PriceData]: ...
