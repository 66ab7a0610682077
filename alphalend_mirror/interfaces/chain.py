"""Chain client protocol — read-only blockchain RPC abstraction."""
from typing import Any, Protocol


class ChainClient(Protocol):
    """Abstract interface for reading on-chain objects."""

    async def get_owned_objects(
        self, wallet_address: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]: ...

    async def get_object(self, object_id: str) -> dict[str, Any]: ...

    async def get_dynamic_fields(self, object_id: str) -> list[dict[str, Any]]: ...

    async def get_dynamic_field_object(
        self, parent_id: str, key_type: str, key_value: str
    ) -> dict[str, Any]: ...
