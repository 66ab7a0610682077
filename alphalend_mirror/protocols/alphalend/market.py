"""Market projection: raw market object → Market with derived rates."""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from ...errors import AlphaLendError
from ...models import Exclusion, Market, MarketBatch, MarketSnapshot
from . import accrual, parser
from .constants import BPS_SCALE, PERCENT_SCALE, WAD
from .fixed_point import from_wad, mul_div
from .rates import borrow_apr

logger = logging.getLogger(__name__)


def total_supply(snapshot: MarketSnapshot) -> int:
    """Underlying represented by all outstanding xTokens, in base units."""
    return mul_div(snapshot.xtoken_supply, snapshot.xtoken_ratio, WAD)


def utilization_rate(total_borrow: int, supply: int) -> Decimal:
    if supply == 0:
        return Decimal(0)
    return Decimal(total_borrow) / Decimal(supply)


def accrue_snapshot(snapshot: MarketSnapshot, now_ms: int) -> MarketSnapshot:
    """Return a copy of ``snapshot`` refreshed to ``now_ms``.

    The borrow APR used for compounding is the one in force before the
    refresh, as on chain.
    """
    config = snapshot.config
    apr = borrow_apr(
        utilization_rate(snapshot.borrowed_amount, total_supply(snapshot)),
        config.interest_rate_kinks,
        config.interest_rates,
    )
    accrued = accrual.accrue_interest(
        snapshot.borrowed_amount,
        snapshot.compounded_interest,
        snapshot.last_update_ms,
        now_ms,
        apr,
    )
    if accrued.elapsed_seconds == 0:
        return snapshot

    ratio = accrual.update_exchange_ratio(
        balance_holding=snapshot.balance_holding,
        borrowed_amount=accrued.borrowed_amount,
        unclaimed_spread_fee=snapshot.unclaimed_spread_fee,
        unclaimed_spread_fee_protocol=snapshot.unclaimed_spread_fee_protocol,
        writeoff_amount=snapshot.writeoff_amount,
        xtoken_supply=snapshot.xtoken_supply,
        prior_ratio=snapshot.xtoken_ratio,
        spread_fee_bps=config.spread_fee_bps,
        protocol_spread_fee_share_bps=config.protocol_spread_fee_share_bps,
    )
    return dataclasses.replace(
        snapshot,
        borrowed_amount=accrued.borrowed_amount,
        compounded_interest=accrued.compounded_interest,
        last_update_ms=accrued.last_update_ms,
        xtoken_ratio=ratio.xtoken_ratio,
        unclaimed_spread_fee=ratio.unclaimed_spread_fee,
        unclaimed_spread_fee_protocol=ratio.unclaimed_spread_fee_protocol,
    )


def build_market(snapshot: MarketSnapshot) -> Market:
    """Derive utilization, APRs and risk ratios from a decoded snapshot."""
    config = snapshot.config
    supply = total_supply(snapshot)
    utilization = utilization_rate(snapshot.borrowed_amount, supply)
    b_apr = borrow_apr(utilization, config.interest_rate_kinks, config.interest_rates)
    reserve_factor = Decimal(config.spread_fee_bps) / BPS_SCALE

    return Market(
        market_id=snapshot.market_id,
        coin_type=snapshot.coin_type,
        total_supply=supply,
        total_borrow=snapshot.borrowed_amount,
        decimal_digit=snapshot.decimal_digit,
        xtoken_ratio=snapshot.xtoken_ratio,
        xtoken_supply=snapshot.xtoken_supply,
        compounded_interest=snapshot.compounded_interest,
        unclaimed_spread_fee=snapshot.unclaimed_spread_fee,
        unclaimed_spread_fee_protocol=snapshot.unclaimed_spread_fee_protocol,
        last_update_ms=snapshot.last_update_ms,
        utilization_rate=utilization,
        borrow_apr=b_apr,
        supply_apr=b_apr * utilization * (1 - reserve_factor),
        ltv=Decimal(config.safe_collateral_ratio) / PERCENT_SCALE,
        liquidation_threshold=Decimal(config.liquidation_threshold) / PERCENT_SCALE,
        deposit_limit=config.deposit_limit,
        borrow_fee=Decimal(config.borrow_fee_bps) / BPS_SCALE,
        borrow_weight=from_wad(config.borrow_weight),
        interest_rate_kinks=config.interest_rate_kinks,
        interest_rates=config.interest_rates,
        active=config.active,
    )


def project_market(
    raw_market: Mapping[str, Any], now_ms: int | None = None, accrue: bool = False
) -> Market:
    """Decode and project one raw market object.

    With ``accrue`` the market is refreshed to ``now_ms`` (milliseconds)
    before utilization and APRs are derived. The raw object is never
    modified.
    """
    snapshot = parser.parse_market(raw_market)
    if accrue:
        if now_ms is None:
            raise ValueError("now_ms is required when accrue=True")
        snapshot = accrue_snapshot(snapshot, now_ms)
    return build_market(snapshot)


def _market_label(raw_market: Mapping[str, Any], position: int) -> str:
    try:
        fields = parser.unwrap_dynamic_field(raw_market)
    except AlphaLendError:
        return f"#{position}"
    market_id = parser.unwrap_fields(fields.get("market_id"))
    return str(market_id) if market_id is not None else f"#{position}"


def project_markets(
    raw_markets: Iterable[Mapping[str, Any]],
    now_ms: int | None = None,
    accrue: bool = False,
) -> MarketBatch:
    """Project every market independently; failures land in ``excluded``."""
    markets: list[Market] = []
    excluded: list[Exclusion] = []

    for position, raw_market in enumerate(raw_markets):
        try:
            markets.append(project_market(raw_market, now_ms, accrue))
        except AlphaLendError as e:
            label = _market_label(raw_market, position)
            logger.warning("Skipping market %s: %s", label, e)
            excluded.append(Exclusion(kind="market", entity_id=label, error=e))

    logger.info("Projected %d markets (%d skipped)", len(markets), len(excluded))
    return MarketBatch(markets=tuple(markets), excluded=tuple(excluded))
