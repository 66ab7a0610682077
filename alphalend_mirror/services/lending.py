"""Lending service — fetches one snapshot and runs the accounting over it."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from ..config import AppConfig
from ..chains.sui import SuiClient
from ..errors import AlphaLendError
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import Exclusion, MarketBatch, Portfolio, PriceData, ProtocolStats
from ..oracles import PythOracle
from ..protocols.alphalend import (
    AlphaLendAdapter,
    aggregate,
    project_markets,
    valuate_positions,
)
from ..protocols.alphalend.parser import build_asset_summary, parse_position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LendingSnapshot:
    """Markets and prices read at one instant, shared by every valuation."""

    markets: MarketBatch
    prices: dict[str, PriceData] = field(default_factory=dict)
    timestamp_ms: int = 0


@dataclass(frozen=True)
class PortfolioReport:
    portfolios: tuple[Portfolio, ...] = ()
    excluded: tuple[Exclusion, ...] = ()


def _now_ms() -> int:
    return int(time.time() * 1000)


class LendingService:
    """Wires the chain adapter and price oracle to the accounting functions."""

    def __init__(
        self,
        config: AppConfig,
        adapter: ProtocolAdapter | None = None,
        oracle: PriceOracle | None = None,
    ) -> None:
        self._config = config
        if adapter is None:
            chain_client = SuiClient(config.sui)
            adapter = AlphaLendAdapter(chain_client, config.protocol)
        self._adapter = adapter
        self._oracle: PriceOracle = oracle or PythOracle(config.pyth)

    async def load_snapshot(
        self, now_ms: int | None = None, accrue: bool | None = None
    ) -> LendingSnapshot:
        """Fetch and project every market, then price their coin types."""
        if now_ms is None:
            now_ms = _now_ms()
        if accrue is None:
            accrue = self._config.valuation.accrue_interest

        raw_markets = await self._adapter.fetch_raw_markets()
        markets = project_markets(raw_markets, now_ms=now_ms, accrue=accrue)

        coin_types = sorted({m.coin_type for m in markets.markets})
        prices = await self._oracle.fetch_prices(coin_types) if coin_types else {}
        return LendingSnapshot(markets=markets, prices=prices, timestamp_ms=now_ms)

    async def get_portfolios(
        self, wallet_address: str, snapshot: LendingSnapshot | None = None
    ) -> PortfolioReport:
        """Value every position owned by ``wallet_address``."""
        if snapshot is None:
            snapshot = await self.load_snapshot()

        raw_positions = await self._adapter.fetch_raw_positions(wallet_address)

        positions = []
        excluded: list[Exclusion] = []
        for position_id, raw in raw_positions.items():
            try:
                positions.append(parse_position(raw, position_id, owner=wallet_address))
            except AlphaLendError as e:
                logger.warning("Skipping position %s: %s", position_id, e)
                excluded.append(Exclusion(kind="position", entity_id=position_id, error=e))

        portfolios = valuate_positions(
            positions, snapshot.markets.by_id(), snapshot.prices
        )
        for portfolio in portfolios:
            log_portfolio(portfolio)
        return PortfolioReport(portfolios=tuple(portfolios), excluded=tuple(excluded))

    async def get_protocol_stats(
        self, snapshot: LendingSnapshot | None = None
    ) -> ProtocolStats:
        if snapshot is None:
            snapshot = await self.load_snapshot()
        return aggregate(snapshot.markets.markets, snapshot.prices)


def log_portfolio(portfolio: Portfolio) -> None:
    """Log a position summary (floats only here, for display)."""
    logger.info("=" * 60)
    logger.info("POSITION SUMMARY")
    logger.info("=" * 60)
    logger.info("  Position ID: %s", portfolio.position_id)
    logger.info("  Collateral: %s", build_asset_summary(portfolio.collateral_assets))
    logger.info("  Total Supplied:       $%.2f", float(portfolio.total_supplied_usd))
    logger.info("  Borrowed: %s", build_asset_summary(portfolio.borrowed_assets))
    logger.info("  Total Borrowed:       $%.2f", float(portfolio.total_borrowed_usd))
    logger.info("  Safe Borrow Limit:    $%.2f", float(portfolio.safe_borrow_limit))
    logger.info("  Liquidation Limit:    $%.2f", float(portfolio.liquidation_limit))
    logger.info("  Borrow Limit Used:    %.2f%%", float(portfolio.borrow_limit_used) * 100)
    logger.info("  Health Factor:        %.4f", float(portfolio.health_factor))
    logger.info(
        "  Liquidatable:         %s",
        "YES - DANGER!" if portfolio.is_liquidatable else "No",
    )
    for exclusion in portfolio.excluded:
        logger.info("  Excluded %s %s: %s", exclusion.kind, exclusion.entity_id, exclusion.reason)
    logger.info("=" * 60)
