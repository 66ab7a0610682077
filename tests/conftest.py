"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from alphalend_mirror.config import (
    AppConfig,
    ChainConfig,
    ProtocolConfig,
    PythConfig,
    ValuationConfig,
)
from alphalend_mirror.models import PriceData

WAD = 10**18

SUI = "0x2::sui::SUI"
USDC = "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC"
BTC = "0xaafb102dd0902f5055cadecd687fb5b71ca82ef0e0285d90afde828ec58ca96b::btc::BTC"


# ---------------------------------------------------------------------------
# Sample on-chain data
# ---------------------------------------------------------------------------


def make_raw_config(**overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "safe_collateral_ratio": "75",
        "liquidation_threshold": "85",
        "deposit_limit": "1000000000000000",
        "borrow_fee_bps": "10",
        "deposit_fee_bps": "0",
        "withdraw_fee_bps": "0",
        "interest_rate_kinks": ["0", "80", "100"],
        "interest_rates": ["0", "500", "4000"],
        "liquidation_bonus_bps": "500",
        "liquidation_fee_bps": "100",
        "spread_fee_bps": "2000",
        "protocol_spread_fee_share_bps": "5000",
        "borrow_weight": {"type": "0x1::number::Number", "fields": {"value": str(WAD)}},
        "isolated": False,
        "is_native": False,
        "active": True,
        "close_factor_percentage": "20",
    }
    fields.update(overrides)
    return {"type": "0xdef::market::MarketConfig", "fields": fields}


def make_raw_market(market_id: str = "1", config: dict | None = None, **overrides: Any) -> dict:
    """A market object shaped like a suix_getDynamicFieldObject payload."""
    fields: dict[str, Any] = {
        "id": {"id": f"0xmarket{market_id}"},
        "market_id": market_id,
        "coin_type": {
            "type": "0x1::type_name::TypeName",
            "fields": {"name": "0" * 63 + "2::sui::SUI"},
        },
        "xtoken_type": {"fields": {"name": "0xdef::xtoken::XToken"}},
        "xtoken_supply": "1000000",
        "xtoken_ratio": {"type": "0x1::number::Number", "fields": {"value": str(WAD)}},
        "borrowed_amount": "800000",
        "writeoff_amount": "0",
        "balance_holding": "200000",
        "unclaimed_spread_fee": "0",
        "unclaimed_spread_fee_protocol": "0",
        "compounded_interest": {"fields": {"value": str(WAD)}},
        "last_update": "1700000000000",
        "last_auto_compound": "1700000000000",
        "decimal_digit": {"fields": {"value": "1"}},
        "config": config if config is not None else make_raw_config(),
    }
    fields.update(overrides)
    return {
        "objectId": f"0xfield{market_id}",
        "content": {
            "dataType": "moveObject",
            "type": "0x2::dynamic_field::Field<u64, 0xdef::market::Market>",
            "fields": {
                "id": {"id": f"0xfield{market_id}"},
                "name": market_id,
                "value": {"type": "0xdef::market::Market", "fields": fields},
            },
        },
    }


def make_raw_position(
    collaterals: dict[str, str] | None = None,
    loans: list[dict[str, Any]] | None = None,
) -> dict:
    """A position object shaped like a suix_getDynamicFieldObject payload."""
    contents = [
        {"type": "0x2::vec_map::Entry<u64, u64>", "fields": {"key": k, "value": v}}
        for k, v in (collaterals or {}).items()
    ]
    return {
        "content": {
            "fields": {
                "name": "0xPOS1",
                "value": {
                    "fields": {
                        "collaterals": {"fields": {"contents": contents}},
                        "loans": [
                            {"type": "0xdef::position::Borrow", "fields": loan}
                            for loan in (loans or [])
                        ],
                        "reward_distributors": [],
                        "is_position_healthy": True,
                        "is_position_liquidatable": False,
                    }
                },
            }
        }
    }


@pytest.fixture()
def raw_market() -> dict:
    return make_raw_market()


@pytest.fixture()
def market_factory():
    return make_raw_market


@pytest.fixture()
def config_factory():
    return make_raw_config


@pytest.fixture()
def position_factory():
    return make_raw_position


@pytest.fixture()
def sample_prices() -> dict[str, PriceData]:
    return {
        SUI: PriceData(coin_type=SUI, price=Decimal("2.0"), expo=-8),
        USDC: PriceData(coin_type=USDC, price=Decimal("1.0"), expo=-8),
        BTC: PriceData(coin_type=BTC, price=Decimal("100000"), expo=-8),
    }


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
    )


@pytest.fixture()
def sample_protocol_config() -> ProtocolConfig:
    return ProtocolConfig(
        contracts={
            "package_id": "0xdef",
            "position_cap_type": "0xdef::position::PositionCap",
            "positions_table_id": "0x111",
            "markets_table_id": "0x222",
        },
        market_ids=("1", "2"),
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.pyth.network/v2/updates/price/latest",
        feeds={SUI: "abc123", BTC: "def456", USDC: "ghi789"},
    )


@pytest.fixture()
def sample_app_config(
    sample_chain_config: ChainConfig,
    sample_protocol_config: ProtocolConfig,
    sample_pyth_config: PythConfig,
) -> AppConfig:
    return AppConfig(
        valuation=ValuationConfig(accrue_interest=False),
        wallets=("0xWALLET123",),
        sui=sample_chain_config,
        protocol=sample_protocol_config,
        pyth=sample_pyth_config,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    valuation:
      accrue_interest: true
    wallets:
      - "0xTEST"
    sui:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    alphalend:
      contracts:
        package_id: "0xdef"
        position_cap_type: "0xdef::position::PositionCap"
        positions_table_id: "0x111"
        markets_table_id: "0x222"
      market_ids: [1, 2, 3]
    pyth:
      hermes_url: "https://hermes.example.com"
      feeds: {"0x2::sui::SUI": "aaa"}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
