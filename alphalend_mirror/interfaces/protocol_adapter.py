"""Protocol adapter — per-protocol raw object fetching."""
from typing import Any, Protocol


class ProtocolAdapter(Protocol):
    """Abstract interface for fetching raw market and position objects."""

    @property
    def protocol_name(self) -> str: ...

    async def fetch_raw_markets(
        self, market_ids: list[str] | None = None
    ) -> list[dict[str, Any]]: ...

    async def fetch_raw_positions(
        self, wallet_address: str
    ) -> dict[str, dict[str, Any]]: ...
