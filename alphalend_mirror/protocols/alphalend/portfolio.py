"""Position valuation against a shared market and price snapshot."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from ...errors import AlphaLendError, MarketNotFoundError, PriceNotFoundError
from ...models import (
    INFINITY,
    ZERO,
    AssetDetail,
    Exclusion,
    Market,
    Portfolio,
    PositionSnapshot,
    PriceData,
    PriceMap,
)
from .constants import DAYS_PER_YEAR, WAD
from .fixed_point import mul_div

logger = logging.getLogger(__name__)


def resolve_market(market_id: str, markets_by_id: Mapping[str, Market]) -> Market:
    market = markets_by_id.get(market_id)
    if market is None:
        raise MarketNotFoundError(market_id)
    return market


def resolve_price(coin_type: str, prices: PriceMap) -> PriceData:
    """Price for ``coin_type``; a missing or zero quote is never valued at $0."""
    price = prices.get(coin_type)
    if price is None or price.price <= 0:
        raise PriceNotFoundError(coin_type)
    return price


def to_usd(amount: int, market: Market, price: PriceData) -> Decimal:
    """USD value of ``amount`` base units of the market's coin."""
    return Decimal(amount) / market.decimal_digit * price.price


def collateral_amount(shares: int, market: Market) -> int:
    """Underlying base units redeemable for ``shares`` xTokens."""
    return mul_div(shares, market.xtoken_ratio, WAD)


def current_debt(amount: int, loan_index: int | None, market: Market) -> int:
    """Bring a loan recorded at ``loan_index`` up to the market's index."""
    if not loan_index or market.compounded_interest <= loan_index:
        return amount
    return mul_div(amount, market.compounded_interest, loan_index)


def calc_health_factor(liquidation_limit: Decimal, total_borrowed_usd: Decimal) -> Decimal:
    """health_factor = liquidation-weighted collateral / debt (Infinity with no debt)."""
    if total_borrowed_usd <= 0:
        return INFINITY
    return liquidation_limit / total_borrowed_usd


def calc_borrow_limit_used(total_borrowed_usd: Decimal, safe_borrow_limit: Decimal) -> Decimal:
    if total_borrowed_usd <= 0:
        return ZERO
    if safe_borrow_limit <= 0:
        return INFINITY
    return total_borrowed_usd / safe_borrow_limit


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return ZERO
    return numerator / denominator


def valuate_position(
    position: PositionSnapshot,
    markets_by_id: Mapping[str, Market],
    prices: PriceMap,
) -> Portfolio:
    """Value one position's collateral and debt.

    Entries whose market or price cannot be resolved are left out of every
    sum and reported in ``Portfolio.excluded``.
    """
    collateral_assets: list[AssetDetail] = []
    borrowed_assets: list[AssetDetail] = []
    excluded: list[Exclusion] = []

    total_supplied_usd = ZERO
    safe_borrow_limit = ZERO
    liquidation_limit = ZERO
    supply_income = ZERO

    for market_id, shares in position.collaterals.items():
        try:
            market = resolve_market(market_id, markets_by_id)
            price = resolve_price(market.coin_type, prices)
            amount = collateral_amount(shares, market)
        except AlphaLendError as e:
            logger.warning("Position %s collateral excluded: %s", position.position_id, e)
            excluded.append(Exclusion(kind="collateral", entity_id=market_id, error=e))
            continue

        usd_value = to_usd(amount, market, price)
        total_supplied_usd += usd_value
        safe_borrow_limit += usd_value * market.ltv
        liquidation_limit += usd_value * market.liquidation_threshold
        supply_income += usd_value * market.supply_apr
        collateral_assets.append(
            AssetDetail(
                market_id=market_id,
                coin_type=market.coin_type,
                symbol=market.symbol,
                amount=amount,
                price=price.price,
                usd_value=usd_value,
                apr=market.supply_apr,
            )
        )

    total_borrowed_usd = ZERO
    weighted_borrowed_usd = ZERO
    borrow_cost = ZERO

    for market_id, loan in position.loans.items():
        try:
            market = resolve_market(market_id, markets_by_id)
            price = resolve_price(market.coin_type, prices)
            amount = current_debt(loan.amount, loan.compounded_interest, market)
        except AlphaLendError as e:
            logger.warning("Position %s loan excluded: %s", position.position_id, e)
            excluded.append(Exclusion(kind="loan", entity_id=market_id, error=e))
            continue

        usd_value = to_usd(amount, market, price)
        total_borrowed_usd += usd_value
        weighted_borrowed_usd += usd_value * market.borrow_weight
        borrow_cost += usd_value * market.borrow_apr
        borrowed_assets.append(
            AssetDetail(
                market_id=market_id,
                coin_type=market.coin_type,
                symbol=market.symbol,
                amount=amount,
                price=price.price,
                usd_value=usd_value,
                apr=market.borrow_apr,
            )
        )

    net_worth = total_supplied_usd - total_borrowed_usd
    health_factor = calc_health_factor(liquidation_limit, total_borrowed_usd)
    net_income = supply_income - borrow_cost

    return Portfolio(
        position_id=position.position_id,
        owner=position.owner,
        total_supplied_usd=total_supplied_usd,
        total_borrowed_usd=total_borrowed_usd,
        net_worth=net_worth,
        safe_borrow_limit=safe_borrow_limit,
        liquidation_limit=liquidation_limit,
        weighted_borrowed_usd=weighted_borrowed_usd,
        borrow_limit_used=calc_borrow_limit_used(total_borrowed_usd, safe_borrow_limit),
        health_factor=health_factor,
        is_liquidatable=total_borrowed_usd > 0 and health_factor < 1,
        aggregated_supply_apr=_ratio(supply_income, total_supplied_usd),
        aggregated_borrow_apr=_ratio(borrow_cost, total_borrowed_usd),
        net_apr=_ratio(net_income, net_worth),
        daily_earnings=net_income / DAYS_PER_YEAR,
        collateral_assets=tuple(collateral_assets),
        borrowed_assets=tuple(borrowed_assets),
        excluded=tuple(excluded),
    )


def valuate_positions(
    positions: Iterable[PositionSnapshot],
    markets_by_id: Mapping[str, Market],
    prices: PriceMap,
) -> list[Portfolio]:
    """Value many positions against the same market and price snapshot."""
    return [valuate_position(p, markets_by_id, prices) for p in positions]
