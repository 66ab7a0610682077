"""Pure parsing functions for AlphaLend on-chain objects — no I/O.

Raw objects come straight from Sui JSON-RPC: numbers are strings, structs are
``{"type": ..., "fields": {...}}`` wrappers and ``Number`` values nest their
integer under ``fields.value``. Everything here either returns a fully typed
snapshot or raises DecodingError/ConfigurationError.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ...errors import ConfigurationError, DecodingError
from ...models import AssetDetail, LoanEntry, MarketConfig, MarketSnapshot, PositionSnapshot
from .constants import BPS_SCALE, SUI_COIN_TYPE, WAD
from .rates import validate_rate_curve

_MISSING = object()
_INT_RE = re.compile(r"-?[0-9]+")


def normalize_coin_type(coin_type: str) -> str:
    """Canonical form of a coin type: ``0x``-prefixed, native SUI collapsed.

    ``TypeName`` values come without the ``0x`` prefix and with a zero-padded
    64 hex digit address, so ``0000...0002::sui::SUI`` and ``0x2::sui::SUI``
    name the same coin.
    """
    coin_type = coin_type.strip()
    parts = coin_type.split("::")
    if len(parts) != 3 or not parts[0]:
        raise DecodingError(f"Malformed coin type: {coin_type!r}")

    address = parts[0].lower()
    if address.startswith("0x"):
        address = address[2:]
    address = "0x" + address

    if address[2:].lstrip("0") == "2" and parts[1] == "sui" and parts[2] == "SUI":
        return SUI_COIN_TYPE
    return "::".join([address, parts[1], parts[2]])


def unwrap_fields(value: Any) -> Any:
    """Strip a ``{"fields": ...}`` struct wrapper, if present."""
    if isinstance(value, Mapping) and "fields" in value:
        return value["fields"]
    return value


def unwrap_dynamic_field(obj: Mapping[str, Any]) -> dict[str, Any]:
    """Return the value struct of a dynamic field object.

    Accepts the ``suix_getDynamicFieldObject`` data payload
    (``content.fields.value.fields``) or an already unwrapped struct.
    """
    if not isinstance(obj, Mapping):
        raise DecodingError(f"Object is not a struct: {obj!r}")
    if "content" in obj:
        obj = obj.get("content") or {}
    fields = unwrap_fields(obj)
    if isinstance(fields, Mapping) and "value" in fields and "name" in fields:
        fields = unwrap_fields(fields["value"])
    if not isinstance(fields, Mapping):
        raise DecodingError("Dynamic field object has no struct value")
    return dict(fields)


def _get(raw: Mapping[str, Any], name: str, default: Any = _MISSING) -> Any:
    value = raw.get(name, _MISSING)
    if value is _MISSING or value is None:
        if default is _MISSING:
            raise DecodingError(f"Missing required field '{name}'")
        return default
    return value


def parse_int(value: Any, name: str) -> int:
    """Decode an on-chain unsigned integer (``u64``/``u256``/``Number``)."""
    value = unwrap_fields(value)
    if isinstance(value, Mapping):
        if "value" not in value:
            raise DecodingError(f"Field '{name}' is a struct without a value")
        value = unwrap_fields(value["value"])
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        result = int(value)
    elif isinstance(value, int) and not isinstance(value, bool):
        result = value
    else:
        raise DecodingError(f"Field '{name}' is not an integer: {value!r}")
    if result < 0:
        raise DecodingError(f"Field '{name}' is negative: {result}")
    return result


def parse_bool(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise DecodingError(f"Field '{name}' is not a bool: {value!r}")
    return value


def parse_int_list(value: Any, name: str) -> tuple[int, ...]:
    value = unwrap_fields(value)
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise DecodingError(f"Field '{name}' is not a list: {value!r}")
    return tuple(parse_int(v, name) for v in value)


def parse_coin_type(value: Any) -> str:
    value = unwrap_fields(value)
    if isinstance(value, Mapping):
        value = value.get("name")
    if not isinstance(value, str) or not value:
        raise DecodingError(f"Malformed coin type: {value!r}")
    return normalize_coin_type(value)


def parse_market_config(raw: Any) -> MarketConfig:
    """Decode a ``MarketConfig`` struct."""
    fields = unwrap_fields(raw)
    if not isinstance(fields, Mapping):
        raise DecodingError("Market config is missing or not a struct")

    kinks = parse_int_list(_get(fields, "interest_rate_kinks"), "interest_rate_kinks")
    rates = parse_int_list(_get(fields, "interest_rates"), "interest_rates")
    validate_rate_curve(kinks, rates)

    config = MarketConfig(
        safe_collateral_ratio=parse_int(
            _get(fields, "safe_collateral_ratio"), "safe_collateral_ratio"
        ),
        liquidation_threshold=parse_int(
            _get(fields, "liquidation_threshold"), "liquidation_threshold"
        ),
        deposit_limit=parse_int(_get(fields, "deposit_limit"), "deposit_limit"),
        borrow_fee_bps=parse_int(_get(fields, "borrow_fee_bps"), "borrow_fee_bps"),
        spread_fee_bps=parse_int(_get(fields, "spread_fee_bps"), "spread_fee_bps"),
        protocol_spread_fee_share_bps=parse_int(
            _get(fields, "protocol_spread_fee_share_bps"),
            "protocol_spread_fee_share_bps",
        ),
        borrow_weight=parse_int(_get(fields, "borrow_weight", WAD), "borrow_weight"),
        interest_rate_kinks=kinks,
        interest_rates=rates,
        liquidation_bonus_bps=parse_int(
            _get(fields, "liquidation_bonus_bps", 0), "liquidation_bonus_bps"
        ),
        close_factor_percentage=parse_int(
            _get(fields, "close_factor_percentage", 0), "close_factor_percentage"
        ),
        isolated=parse_bool(_get(fields, "isolated", False), "isolated"),
        active=parse_bool(_get(fields, "active", True), "active"),
    )

    for name in ("spread_fee_bps", "protocol_spread_fee_share_bps", "borrow_fee_bps"):
        if getattr(config, name) > BPS_SCALE:
            raise ConfigurationError(f"{name} above 100%: {getattr(config, name)}")
    if config.liquidation_threshold < config.safe_collateral_ratio:
        raise ConfigurationError(
            "liquidation_threshold is below safe_collateral_ratio: "
            f"{config.liquidation_threshold} < {config.safe_collateral_ratio}"
        )
    return config


def parse_market(raw: Mapping[str, Any]) -> MarketSnapshot:
    """Decode one market object into a MarketSnapshot."""
    fields = unwrap_dynamic_field(raw)

    decimal_digit = parse_int(_get(fields, "decimal_digit"), "decimal_digit")
    if decimal_digit == 0:
        raise DecodingError("Field 'decimal_digit' is zero")

    return MarketSnapshot(
        market_id=str(parse_int(_get(fields, "market_id"), "market_id")),
        coin_type=parse_coin_type(_get(fields, "coin_type")),
        xtoken_supply=parse_int(_get(fields, "xtoken_supply"), "xtoken_supply"),
        xtoken_ratio=parse_int(_get(fields, "xtoken_ratio"), "xtoken_ratio"),
        borrowed_amount=parse_int(_get(fields, "borrowed_amount"), "borrowed_amount"),
        balance_holding=parse_int(_get(fields, "balance_holding"), "balance_holding"),
        writeoff_amount=parse_int(_get(fields, "writeoff_amount", 0), "writeoff_amount"),
        unclaimed_spread_fee=parse_int(
            _get(fields, "unclaimed_spread_fee", 0), "unclaimed_spread_fee"
        ),
        unclaimed_spread_fee_protocol=parse_int(
            _get(fields, "unclaimed_spread_fee_protocol", 0),
            "unclaimed_spread_fee_protocol",
        ),
        compounded_interest=parse_int(
            _get(fields, "compounded_interest"), "compounded_interest"
        ),
        last_update_ms=parse_int(_get(fields, "last_update"), "last_update"),
        decimal_digit=decimal_digit,
        config=parse_market_config(_get(fields, "config")),
    )


def _parse_collaterals(raw: Any) -> dict[str, int]:
    """Decode a ``VecMap<u64, u64>`` (or a plain mapping) of market id → xtoken shares."""
    raw = unwrap_fields(raw)
    if isinstance(raw, Mapping) and "contents" in raw:
        raw = raw["contents"]

    collaterals: dict[str, int] = {}
    if isinstance(raw, Mapping):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = []
        for entry in raw:
            fields = unwrap_fields(entry)
            if not isinstance(fields, Mapping):
                raise DecodingError(f"Malformed collateral entry: {entry!r}")
            items.append((_get(fields, "key"), _get(fields, "value")))
    else:
        raise DecodingError(f"Malformed collaterals: {raw!r}")

    for key, value in items:
        market_id = str(parse_int(key, "collaterals.key"))
        if market_id in collaterals:
            raise DecodingError(f"Duplicate collateral for market {market_id}")
        collaterals[market_id] = parse_int(value, "collaterals.value")
    return collaterals


def _parse_loans(raw: Any) -> dict[str, LoanEntry]:
    """Decode the position's ``vector<Borrow>`` (or a plain mapping) of loans."""
    raw = unwrap_fields(raw)
    loans: dict[str, LoanEntry] = {}

    entries: list[LoanEntry] = []
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            entries.append(
                LoanEntry(
                    market_id=str(parse_int(key, "loans.market_id")),
                    amount=parse_int(value, "loans.amount"),
                )
            )
    elif isinstance(raw, list):
        for entry in raw:
            fields = unwrap_fields(entry)
            if not isinstance(fields, Mapping):
                raise DecodingError(f"Malformed loan entry: {entry!r}")
            index = fields.get("borrow_compounded_interest")
            entries.append(
                LoanEntry(
                    market_id=str(parse_int(_get(fields, "market_id"), "loans.market_id")),
                    amount=parse_int(_get(fields, "amount"), "loans.amount"),
                    compounded_interest=(
                        None
                        if index is None
                        else parse_int(index, "loans.borrow_compounded_interest")
                    ),
                )
            )
    else:
        raise DecodingError(f"Malformed loans: {raw!r}")

    for loan in entries:
        if loan.market_id in loans:
            raise DecodingError(f"Duplicate loan for market {loan.market_id}")
        if loan.compounded_interest == 0:
            raise DecodingError(f"Loan in market {loan.market_id} has a zero interest index")
        loans[loan.market_id] = loan
    return loans


def parse_position(
    raw: Mapping[str, Any],
    position_id: str | None = None,
    owner: str | None = None,
) -> PositionSnapshot:
    """Decode one position object into a PositionSnapshot.

    ``position_id`` and ``owner`` come from the PositionCap the position was
    found through; when omitted they are read from the object itself.
    """
    fields = unwrap_dynamic_field(raw)

    if position_id is None:
        raw_id = unwrap_fields(fields.get("id", {}))
        position_id = raw_id.get("id", "") if isinstance(raw_id, Mapping) else str(raw_id)

    return PositionSnapshot(
        position_id=position_id or "",
        owner=owner if owner is not None else str(fields.get("owner", "") or ""),
        collaterals=_parse_collaterals(_get(fields, "collaterals", {})),
        loans=_parse_loans(_get(fields, "loans", [])),
    )


def build_asset_summary(details: list[AssetDetail] | tuple[AssetDetail, ...]) -> str:
    """Build a human-readable summary string for asset details."""
    parts = [
        f"{d.symbol} ({float(d.amount):,.0f} @ ${float(d.price):,.2f})"
        for d in details
    ]
    return ", ".join(parts) if parts else "N/A"
