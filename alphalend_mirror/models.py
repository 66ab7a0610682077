"""Data models — all frozen (immutable)."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from .errors import AlphaLendError

ZERO = Decimal(0)
INFINITY = Decimal("Infinity")


@dataclass(frozen=True)
class PriceData:
    """Current price of one coin type, already scaled by its exponent."""

    coin_type: str
    price: Decimal
    expo: int = 0
    conf: Decimal = ZERO
    publish_time: int = 0


PriceMap = Mapping[str, PriceData]


@dataclass(frozen=True)
class MarketConfig:
    """Risk parameters of a market, as stored on chain (percent / bps / WAD)."""

    safe_collateral_ratio: int
    liquidation_threshold: int
    deposit_limit: int
    borrow_fee_bps: int
    spread_fee_bps: int
    protocol_spread_fee_share_bps: int
    borrow_weight: int
    interest_rate_kinks: tuple[int, ...]
    interest_rates: tuple[int, ...]
    liquidation_bonus_bps: int = 0
    close_factor_percentage: int = 0
    isolated: bool = False
    active: bool = True


@dataclass(frozen=True)
class MarketSnapshot:
    """Strictly-typed copy of one on-chain market object."""

    market_id: str
    coin_type: str
    xtoken_supply: int
    xtoken_ratio: int
    borrowed_amount: int
    balance_holding: int
    writeoff_amount: int
    unclaimed_spread_fee: int
    unclaimed_spread_fee_protocol: int
    compounded_interest: int
    last_update_ms: int
    decimal_digit: int
    config: MarketConfig


@dataclass(frozen=True)
class Market:
    """Projected market: snapshot figures plus derived rates and limits."""

    market_id: str
    coin_type: str
    total_supply: int
    total_borrow: int
    decimal_digit: int
    xtoken_ratio: int
    xtoken_supply: int
    compounded_interest: int
    unclaimed_spread_fee: int
    unclaimed_spread_fee_protocol: int
    last_update_ms: int
    utilization_rate: Decimal
    borrow_apr: Decimal
    supply_apr: Decimal
    ltv: Decimal
    liquidation_threshold: Decimal
    deposit_limit: int
    borrow_fee: Decimal
    borrow_weight: Decimal
    interest_rate_kinks: tuple[int, ...] = ()
    interest_rates: tuple[int, ...] = ()
    active: bool = True

    @property
    def symbol(self) -> str:
        return self.coin_type.split("::")[-1].upper()


@dataclass(frozen=True)
class LoanEntry:
    """Debt of a position in one market.

    ``compounded_interest`` is the market index at the time the loan was
    last touched; ``None`` means ``amount`` is already current.
    """

    market_id: str
    amount: int
    compounded_interest: int | None = None


@dataclass(frozen=True)
class PositionSnapshot:
    """Strictly-typed copy of one on-chain position object.

    The maps are read-only views, so the snapshot compares by value but is
    not hashable.
    """

    position_id: str
    owner: str = ""
    collaterals: Mapping[str, int] = field(default_factory=dict)
    loans: Mapping[str, LoanEntry] = field(default_factory=dict)

    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        for name in ("collaterals", "loans"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))


@dataclass(frozen=True)
class Exclusion:
    """An entity left out of a batch result, with the error that excluded it."""

    kind: str
    entity_id: str
    error: AlphaLendError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class MarketBatch:
    """Projected markets plus the raw markets that failed to project."""

    markets: tuple[Market, ...] = ()
    excluded: tuple[Exclusion, ...] = ()

    def by_id(self) -> dict[str, Market]:
        return {m.market_id: m for m in self.markets}


@dataclass(frozen=True)
class AssetDetail:
    """Single asset within a position (collateral or borrow)."""

    market_id: str
    coin_type: str
    symbol: str
    amount: int
    price: Decimal
    usd_value: Decimal
    apr: Decimal = ZERO


@dataclass(frozen=True)
class Portfolio:
    """Valuation of one position against one market/price snapshot."""

    position_id: str
    owner: str = ""
    total_supplied_usd: Decimal = ZERO
    total_borrowed_usd: Decimal = ZERO
    net_worth: Decimal = ZERO
    safe_borrow_limit: Decimal = ZERO
    liquidation_limit: Decimal = ZERO
    weighted_borrowed_usd: Decimal = ZERO
    borrow_limit_used: Decimal = ZERO
    health_factor: Decimal = INFINITY
    is_liquidatable: bool = False
    aggregated_supply_apr: Decimal = ZERO
    aggregated_borrow_apr: Decimal = ZERO
    net_apr: Decimal = ZERO
    daily_earnings: Decimal = ZERO
    collateral_assets: tuple[AssetDetail, ...] = ()
    borrowed_assets: tuple[AssetDetail, ...] = ()
    excluded: tuple[Exclusion, ...] = ()


@dataclass(frozen=True)
class ProtocolStats:
    """Protocol-wide USD totals."""

    total_supplied_usd: Decimal = ZERO
    total_borrowed_usd: Decimal = ZERO
    market_count: int = 0
    excluded: tuple[Exclusion, ...] = ()
