"""AlphaLend protocol adapter — fetches raw market and position objects."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...config import ProtocolConfig
from ...interfaces.chain import ChainClient

logger = logging.getLogger(__name__)


class AlphaLendAdapter:
    """Fetch raw AlphaLend objects on SUI.

    Only reads: decoding and all accounting happen downstream on the
    returned snapshots.
    """

    def __init__(self, chain_client: ChainClient, config: ProtocolConfig) -> None:
        self._client = chain_client
        self._config = config
        self._position_cap_type = config.contracts.get("position_cap_type", "")
        self._positions_table_id = config.contracts.get("positions_table_id", "")
        self._markets_table_id = config.contracts.get("markets_table_id", "")

    @property
    def protocol_name(self) -> str:
        return "alphalend"

    async def list_market_ids(self) -> list[str]:
        """Market ids from config, else every key of the markets table."""
        if self._config.market_ids:
            return list(self._config.market_ids)

        entries = await self._client.get_dynamic_fields(self._markets_table_id)
        market_ids = [
            str(entry.get("name", {}).get("value"))
            for entry in entries
            if entry.get("name", {}).get("value") is not None
        ]
        return sorted(market_ids, key=int)

    async def fetch_raw_markets(
        self, market_ids: list[str] | None = None
    ) -> list[dict[str, Any]]:
        """Fetch raw market objects concurrently; missing markets are skipped."""
        if market_ids is None:
            market_ids = await self.list_market_ids()

        results = await asyncio.gather(
            *(
                self._client.get_dynamic_field_object(
                    self._markets_table_id, "u64", str(market_id)
                )
                for market_id in market_ids
            )
        )

        markets: list[dict[str, Any]] = []
        for market_id, result in zip(market_ids, results):
            if not result:
                logger.warning("No market object found for market %s", market_id)
                continue
            markets.append(result)

        logger.info("Fetched %d of %d markets", len(markets), len(market_ids))
        return markets

    def _is_position_cap(self, obj_type: str) -> bool:
        if self._position_cap_type:
            return obj_type == self._position_cap_type
        type_lower = obj_type.lower()
        return "positioncap" in type_lower or "position_cap" in type_lower

    async def _get_position_ids(self, wallet_address: str) -> list[str]:
        """Position ids referenced by the PositionCap objects in the wallet."""
        objects = await self._client.get_owned_objects(
            wallet_address, self._position_cap_type or None
        )
        position_ids: list[str] = []

        for obj in objects:
            data = obj.get("data", {})
            if not self._is_position_cap(data.get("type", "")):
                continue

            fields = data.get("content", {}).get("fields", {})
            if "position_id" not in fields and data.get("objectId"):
                details = await self._client.get_object(data["objectId"])
                fields = details.get("data", {}).get("content", {}).get("fields", {})

            position_id = fields.get("position_id")
            if not position_id:
                logger.debug("No position_id found in PositionCap %s", data.get("objectId"))
                continue
            position_ids.append(position_id)

        return position_ids

    async def fetch_raw_positions(self, wallet_address: str) -> dict[str, dict[str, Any]]:
        """Raw position objects owned by ``wallet_address``, keyed by position id."""
        logger.info("Checking AlphaLend positions for wallet: %s", wallet_address)

        position_ids = await self._get_position_ids(wallet_address)
        logger.info("Found %d position capabilities", len(position_ids))

        results = await asyncio.gather(
            *(
                self._client.get_dynamic_field_object(
                    self._positions_table_id, "0x2::object::ID", position_id
                )
                for position_id in position_ids
            )
        )

        positions: dict[str, dict[str, Any]] = {}
        for position_id, result in zip(position_ids, results):
            if not result:
                logger.warning("Could not fetch position data for %s", position_id)
                continue
            positions[position_id] = result
        return positions
