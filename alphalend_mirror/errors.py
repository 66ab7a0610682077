"""Error taxonomy for the accounting mirror."""
from __future__ import annotations


class AlphaLendError(Exception):
    """Base error class for accounting errors."""


class DecodingError(AlphaLendError):
    """A raw market or position object is missing or has malformed fields."""


class MarketNotFoundError(AlphaLendError):
    """A position references a market id absent from the market map."""

    def __init__(self, market_id: str) -> None:
        super().__init__(f"Market not found: {market_id}")
        self.market_id = market_id


class PriceNotFoundError(AlphaLendError):
    """No price is available for a coin type."""

    def __init__(self, coin_type: str) -> None:
        super().__init__(f"Price not found for {coin_type}")
        self.coin_type = coin_type


class ArithmeticOverflowError(AlphaLendError):
    """A fixed-point operation left the unsigned 256-bit working width."""


class ConfigurationError(AlphaLendError):
    """A market's risk configuration or the application config file is malformed."""
