"""SUI JSON-RPC client with endpoint fallback."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig

logger = logging.getLogger(__name__)

PAGE_SIZE = 50


class SuiClient:
    """SUI blockchain RPC client with automatic endpoint fallback.

    Read-only: the mirror never signs or submits transactions.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call, trying each endpoint once starting from the last good one."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RuntimeError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result", {})
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed (%s): %s", rpc_url, method, e)
                continue

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    async def get_owned_objects(
        self, wallet_address: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]:
        """Get all objects owned by the wallet, optionally of one struct type."""
        all_objects: list[dict[str, Any]] = []
        cursor = None
        query_filter = {"StructType": struct_type} if struct_type else None

        try:
            while True:
                result = await self.rpc_call(
                    "suix_getOwnedObjects",
                    [
                        wallet_address,
                        {
                            "filter": query_filter,
                            "options": {"showType": True, "showContent": True},
                        },
                        cursor,
                        PAGE_SIZE,
                    ],
                )

                all_objects.extend(result.get("data", []))

                cursor = result.get("nextCursor")
                if not result.get("hasNextPage", False) or not cursor:
                    break

            return all_objects
        except Exception as e:
            logger.error("Error fetching owned objects for %s: %s", wallet_address, e)
            return []

    async def get_object(self, object_id: str) -> dict[str, Any]:
        """Get an object with its type and content."""
        try:
            return await self.rpc_call(
                "sui_getObject",
                [object_id, {"showType": True, "showContent": True}],
            )
        except Exception as e:
            logger.error("Error fetching object %s: %s", object_id, e)
            return {}

    async def get_dynamic_fields(self, object_id: str) -> list[dict[str, Any]]:
        """List every dynamic field (table key) of an object (paginated)."""
        fields: list[dict[str, Any]] = []
        cursor = None

        try:
            while True:
                result = await self.rpc_call(
                    "suix_getDynamicFields", [object_id, cursor, PAGE_SIZE]
                )
                fields.extend(result.get("data", []))

                cursor = result.get("nextCursor")
                if not result.get("hasNextPage", False) or not cursor:
                    break

            return fields
        except Exception as e:
            logger.error("Error fetching dynamic fields of %s: %s", object_id, e)
            return []

    async def get_dynamic_field_object(
        self, parent_id: str, key_type: str, key_value: str
    ) -> dict[str, Any]:
        """Get one dynamic field (table entry) of ``parent_id``."""
        try:
            result = await self.rpc_call(
                "suix_getDynamicFieldObject",
                [parent_id, {"type": key_type, "value": key_value}],
            )
            return result.get("data") or {}
        except Exception as e:
            logger.error(
                "Error fetching dynamic field %s=%s of %s: %s",
                key_type, key_value, parent_id, e,
            )
            return {}
