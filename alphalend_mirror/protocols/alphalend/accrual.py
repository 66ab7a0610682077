"""Interest accrual and xToken exchange-ratio updates — pure integer math, no I/O.

Mirrors the market refresh the lending contract performs before every
action: the borrowed balance compounds per second at the current borrow APR,
then the xToken ratio is re-derived from the market's liquidity and the
spread fee is split between the protocol and the pool.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from ...errors import ArithmeticOverflowError
from . import fixed_point
from .constants import BPS_SCALE, MILLISECONDS_PER_SECOND, SECONDS_PER_YEAR, WAD

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccrualResult:
    borrowed_amount: int
    compounded_interest: int
    last_update_ms: int
    elapsed_seconds: int = 0
    multiplier: int = WAD


@dataclass(frozen=True)
class ExchangeRatioUpdate:
    xtoken_ratio: int
    total_liquidity: int
    unclaimed_spread_fee: int
    unclaimed_spread_fee_protocol: int
    spread_fee_ratio: int = 0
    protocol_share: int = 0


def rate_per_second(borrow_apr: Decimal) -> int:
    """Per-second borrow rate as a WAD integer (365-day year, truncated)."""
    if borrow_apr < 0:
        raise ArithmeticOverflowError(f"Negative borrow APR: {borrow_apr}")
    return fixed_point.to_wad(Decimal(borrow_apr) / SECONDS_PER_YEAR)


def compounded_multiplier(borrow_apr: Decimal, elapsed_seconds: int) -> int:
    """``(1 + apr / seconds_per_year) ** elapsed_seconds`` in WAD."""
    return fixed_point.wad_pow(WAD + rate_per_second(borrow_apr), elapsed_seconds)


def accrue_interest(
    borrowed_amount: int,
    compounded_interest: int,
    last_update_ms: int,
    now_ms: int,
    borrow_apr: Decimal,
) -> AccrualResult:
    """Compound ``borrowed_amount`` and the market index from ``last_update_ms`` to ``now_ms``.

    Whole seconds only: the sub-second remainder stays on ``last_update_ms``
    so that two consecutive calls compose like one. No time elapsed or
    nothing borrowed leaves both balances untouched.
    """
    fixed_point.checked(borrowed_amount)
    fixed_point.checked(compounded_interest)

    elapsed_seconds = (now_ms - last_update_ms) // MILLISECONDS_PER_SECOND
    if elapsed_seconds <= 0:
        return AccrualResult(borrowed_amount, compounded_interest, last_update_ms)

    advanced_ms = last_update_ms + elapsed_seconds * MILLISECONDS_PER_SECOND
    if borrowed_amount == 0:
        return AccrualResult(
            borrowed_amount, compounded_interest, advanced_ms, elapsed_seconds
        )

    multiplier = compounded_multiplier(borrow_apr, elapsed_seconds)
    logger.debug(
        "Accruing %ds at APR %s: multiplier %d", elapsed_seconds, borrow_apr, multiplier
    )
    return AccrualResult(
        borrowed_amount=fixed_point.wad_mul(borrowed_amount, multiplier),
        compounded_interest=fixed_point.wad_mul(compounded_interest, multiplier),
        last_update_ms=advanced_ms,
        elapsed_seconds=elapsed_seconds,
        multiplier=multiplier,
    )


def total_liquidity(
    balance_holding: int,
    borrowed_amount: int,
    unclaimed_spread_fee: int,
    writeoff_amount: int,
    unclaimed_spread_fee_protocol: int,
) -> int:
    """Underlying owned by xToken holders, floored at zero."""
    liquidity = (
        balance_holding
        + borrowed_amount
        - unclaimed_spread_fee
        - writeoff_amount
        - unclaimed_spread_fee_protocol
    )
    return max(liquidity, 0)


def update_exchange_ratio(
    balance_holding: int,
    borrowed_amount: int,
    unclaimed_spread_fee: int,
    unclaimed_spread_fee_protocol: int,
    writeoff_amount: int,
    xtoken_supply: int,
    prior_ratio: int,
    spread_fee_bps: int,
    protocol_spread_fee_share_bps: int,
) -> ExchangeRatioUpdate:
    """Re-derive the xToken ratio and earmark the spread fee on its growth.

    The fee is taken out of the ratio increase before holders see it:
    ``spread_fee_ratio = delta * spread_fee_bps / 10000`` and the published
    ratio is ``new_ratio - spread_fee_ratio``. A ratio decrease (write-off)
    is passed through without a fee.
    """
    liquidity = total_liquidity(
        balance_holding,
        borrowed_amount,
        unclaimed_spread_fee,
        writeoff_amount,
        unclaimed_spread_fee_protocol,
    )
    if xtoken_supply == 0:
        new_ratio = WAD
    else:
        new_ratio = fixed_point.mul_div(liquidity, WAD, xtoken_supply)

    ratio_delta = new_ratio - prior_ratio
    if ratio_delta <= 0:
        return ExchangeRatioUpdate(
            xtoken_ratio=new_ratio,
            total_liquidity=liquidity,
            unclaimed_spread_fee=unclaimed_spread_fee,
            unclaimed_spread_fee_protocol=unclaimed_spread_fee_protocol,
        )

    spread_fee_ratio = fixed_point.mul_div(ratio_delta, spread_fee_bps, BPS_SCALE)
    gross_spread_fee = fixed_point.checked_mul(liquidity, spread_fee_ratio)
    protocol_share = fixed_point.mul_div(
        gross_spread_fee, protocol_spread_fee_share_bps, BPS_SCALE
    )
    protocol_fee = protocol_share // WAD
    pool_fee = (gross_spread_fee - protocol_share) // WAD

    logger.debug(
        "Spread fee on ratio delta %d: pool %d, protocol %d",
        ratio_delta, pool_fee, protocol_fee,
    )
    return ExchangeRatioUpdate(
        xtoken_ratio=new_ratio - spread_fee_ratio,
        total_liquidity=liquidity,
        unclaimed_spread_fee=unclaimed_spread_fee + pool_fee,
        unclaimed_spread_fee_protocol=unclaimed_spread_fee_protocol + protocol_fee,
        spread_fee_ratio=spread_fee_ratio,
        protocol_share=protocol_fee,
    )
