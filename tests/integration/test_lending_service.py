"""Integration tests for the lending service — full flow with mocked I/O."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from alphalend_mirror.config import AppConfig
from alphalend_mirror.errors import DecodingError
from alphalend_mirror.services import LendingService, LendingSnapshot
from tests.conftest import SUI, USDC, make_raw_config, make_raw_market, make_raw_position

T0 = 1_700_000_000_000


@pytest.fixture()
def mock_adapter() -> AsyncMock:
    adapter = AsyncMock()
    adapter.fetch_raw_markets.return_value = [
        make_raw_market("1"),
        make_raw_market("2", coin_type={"fields": {"name": USDC}}),
    ]
    adapter.fetch_raw_positions.return_value = {
        "0xPOS1": make_raw_position(
            collaterals={"1": "100"},
            loans=[{"market_id": "2", "amount": "50"}],
        )
    }
    return adapter


@pytest.fixture()
def mock_oracle(sample_prices: dict) -> AsyncMock:
    oracle = AsyncMock()
    oracle.fetch_prices.return_value = sample_prices
    return oracle


@pytest.fixture()
def service(
    sample_app_config: AppConfig, mock_adapter: AsyncMock, mock_oracle: AsyncMock
) -> LendingService:
    return LendingService(sample_app_config, adapter=mock_adapter, oracle=mock_oracle)


class TestLoadSnapshot:
    @pytest.mark.asyncio
    async def test_projects_markets_and_prices_their_coins(
        self, service: LendingService, mock_oracle: AsyncMock
    ) -> None:
        snapshot = await service.load_snapshot(now_ms=T0)

        assert isinstance(snapshot, LendingSnapshot)
        assert [m.market_id for m in snapshot.markets.markets] == ["1", "2"]
        assert snapshot.timestamp_ms == T0
        mock_oracle.fetch_prices.assert_awaited_once_with(sorted([SUI, USDC]))

    @pytest.mark.asyncio
    async def test_accrual_follows_config(self, service: LendingService) -> None:
        snapshot = await service.load_snapshot(now_ms=T0 + 86_400_000)
        # accrue_interest is off in the sample config
        assert snapshot.markets.markets[0].total_borrow == 800_000

    @pytest.mark.asyncio
    async def test_accrual_override(self, service: LendingService) -> None:
        snapshot = await service.load_snapshot(now_ms=T0 + 86_400_000, accrue=True)
        assert snapshot.markets.markets[0].total_borrow > 800_000
        assert snapshot.markets.markets[0].last_update_ms == T0 + 86_400_000

    @pytest.mark.asyncio
    async def test_bad_market_excluded(
        self, service: LendingService, mock_adapter: AsyncMock
    ) -> None:
        mock_adapter.fetch_raw_markets.return_value = [
            make_raw_market("1"),
            make_raw_market("2", config=make_raw_config(liquidation_threshold="10")),
        ]
        snapshot = await service.load_snapshot(now_ms=T0)
        assert [m.market_id for m in snapshot.markets.markets] == ["1"]
        assert snapshot.markets.excluded[0].entity_id == "2"

    @pytest.mark.asyncio
    async def test_no_markets_skips_oracle(
        self, service: LendingService, mock_adapter: AsyncMock, mock_oracle: AsyncMock
    ) -> None:
        mock_adapter.fetch_raw_markets.return_value = []
        snapshot = await service.load_snapshot(now_ms=T0)
        assert snapshot.prices == {}
        mock_oracle.fetch_prices.assert_not_called()


class TestGetPortfolios:
    @pytest.mark.asyncio
    async def test_values_wallet_positions(
        self, service: LendingService, mock_adapter: AsyncMock
    ) -> None:
        snapshot = await service.load_snapshot(now_ms=T0)
        report = await service.get_portfolios("0xWALLET123", snapshot)

        mock_adapter.fetch_raw_positions.assert_awaited_once_with("0xWALLET123")
        assert len(report.portfolios) == 1
        portfolio = report.portfolios[0]
        assert portfolio.position_id == "0xPOS1"
        assert portfolio.owner == "0xWALLET123"
        # 100 SUI at $2 against 50 USDC
        assert portfolio.total_supplied_usd == Decimal(200)
        assert portfolio.total_borrowed_usd == Decimal(50)
        assert portfolio.health_factor == Decimal("3.4")
        assert report.excluded == ()

    @pytest.mark.asyncio
    async def test_loads_snapshot_when_missing(
        self, service: LendingService, mock_adapter: AsyncMock
    ) -> None:
        report = await service.get_portfolios("0xWALLET123")
        assert len(report.portfolios) == 1
        mock_adapter.fetch_raw_markets.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_undecodable_position_excluded(
        self, service: LendingService, mock_adapter: AsyncMock
    ) -> None:
        mock_adapter.fetch_raw_positions.return_value = {
            "0xBAD": {"content": {"fields": "junk"}},
            "0xPOS1": make_raw_position(collaterals={"1": "10"}),
        }
        report = await service.get_portfolios("0xWALLET123")
        assert [p.position_id for p in report.portfolios] == ["0xPOS1"]
        assert report.excluded[0].kind == "position"
        assert report.excluded[0].entity_id == "0xBAD"
        assert isinstance(report.excluded[0].error, DecodingError)

    @pytest.mark.asyncio
    async def test_no_positions(
        self, service: LendingService, mock_adapter: AsyncMock
    ) -> None:
        mock_adapter.fetch_raw_positions.return_value = {}
        report = await service.get_portfolios("0xWALLET123")
        assert report.portfolios == ()


class TestGetProtocolStats:
    @pytest.mark.asyncio
    async def test_totals(self, service: LendingService) -> None:
        stats = await service.get_protocol_stats()
        assert stats.total_supplied_usd == Decimal(3_000_000)
        assert stats.total_borrowed_usd == Decimal(2_400_000)
        assert stats.market_count == 2

    @pytest.mark.asyncio
    async def test_unpriced_market_skipped(
        self, service: LendingService, mock_oracle: AsyncMock, sample_prices: dict
    ) -> None:
        mock_oracle.fetch_prices.return_value = {SUI: sample_prices[SUI]}
        stats = await service.get_protocol_stats()
        assert stats.total_supplied_usd == Decimal(2_000_000)
        assert stats.market_count == 1
        assert stats.excluded[0].entity_id == "2"
