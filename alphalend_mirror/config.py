"""Configuration loader: config.yaml plus ``.env``, with ``${VAR}`` expansion."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_CONTRACTS = ("markets_table_id", "positions_table_id")


@dataclass(frozen=True)
class ValuationConfig:
    accrue_interest: bool = True


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class ProtocolConfig:
    contracts: dict[str, str] = field(default_factory=dict)
    market_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    valuation: ValuationConfig = field(default_factory=ValuationConfig)
    wallets: tuple[str, ...] = ()
    sui: ChainConfig = field(default_factory=ChainConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    pyth: PythConfig = field(default_factory=PythConfig)


_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Expand ${VAR} in every string of a parsed YAML tree; unset vars become ''."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _section(raw: dict[str, Any], name: str, kind: type = dict) -> Any:
    value = raw.get(name)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise ConfigurationError(f"'{name}' must be a {kind.__name__}")
    return value


def _build(raw: dict[str, Any]) -> AppConfig:
    valuation = _section(raw, "valuation")
    accrue = valuation.get("accrue_interest", True)
    if not isinstance(accrue, bool):
        raise ConfigurationError(f"valuation.accrue_interest must be true or false: {accrue!r}")

    sui = _section(raw, "sui")
    alphalend = _section(raw, "alphalend")
    pyth = _section(raw, "pyth")

    return AppConfig(
        valuation=ValuationConfig(accrue_interest=accrue),
        wallets=tuple(str(w) for w in _section(raw, "wallets", list)),
        sui=ChainConfig(
            rpc_endpoints=tuple(_section(sui, "rpc_endpoints", list)),
            rpc_timeout=int(sui.get("rpc_timeout", 30)),
        ),
        protocol=ProtocolConfig(
            contracts={k: str(v) for k, v in _section(alphalend, "contracts").items()},
            market_ids=tuple(str(m) for m in _section(alphalend, "market_ids", list)),
        ),
        pyth=PythConfig(
            hermes_url=pyth.get("hermes_url", PythConfig.hermes_url),
            feeds={str(k): str(v) for k, v in _section(pyth, "feeds").items()},
        ),
    )


def _validate(cfg: AppConfig) -> None:
    if not cfg.sui.rpc_endpoints:
        raise ConfigurationError("sui.rpc_endpoints is empty")
    for key in REQUIRED_CONTRACTS:
        if not cfg.protocol.contracts.get(key):
            raise ConfigurationError(f"alphalend.contracts is missing '{key}'")
    for market_id in cfg.protocol.market_ids:
        if not market_id.isdigit():
            raise ConfigurationError(f"Market id is not an integer: {market_id!r}")
    for address in cfg.wallets:
        if not address.startswith("0x"):
            raise ConfigurationError(f"Wallet address is not a Sui address: {address!r}")


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} does not hold a mapping")

    cfg = _build(_interpolate_env(raw))
    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg
