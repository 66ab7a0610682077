"""Kinked interest-rate curve.

``kinks`` are utilization breakpoints in percent and ``rates`` the borrow
rate at each breakpoint in basis points; between breakpoints the rate is
interpolated linearly, starting from (0%, 0 bps).
"""
from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from ...errors import ConfigurationError
from .constants import BPS_SCALE, PERCENT_SCALE


def validate_rate_curve(kinks: Sequence[int], rates: Sequence[int]) -> None:
    """Raise ConfigurationError unless the kink table describes a usable curve."""
    if not rates:
        raise ConfigurationError("Interest rate table is empty")
    if kinks and len(kinks) != len(rates):
        raise ConfigurationError(
            f"Mismatched kink table: {len(kinks)} breakpoints, {len(rates)} rates"
        )
    for rate in rates:
        if rate < 0:
            raise ConfigurationError(f"Negative interest rate: {rate} bps")
    for left, right in zip(kinks, kinks[1:]):
        if right <= left:
            raise ConfigurationError(
                f"Kink breakpoints must be strictly ascending: {list(kinks)}"
            )
    if kinks and (kinks[0] < 0 or kinks[-1] > PERCENT_SCALE):
        raise ConfigurationError(f"Kink breakpoints outside 0-100%: {list(kinks)}")
    for left, right in zip(rates, rates[1:]):
        if right < left:
            raise ConfigurationError(
                f"Interest rates must be non-decreasing: {list(rates)}"
            )


def borrow_apr(
    utilization: Decimal, kinks: Sequence[int], rates: Sequence[int]
) -> Decimal:
    """Borrow APR (as a fraction, 0.05 == 5%) at ``utilization`` (0.0 to 1.0)."""
    validate_rate_curve(kinks, rates)
    if not kinks:
        return Decimal(rates[0]) / BPS_SCALE

    utilization_pct = max(Decimal(utilization), Decimal(0)) * PERCENT_SCALE

    left_kink = Decimal(0)
    left_rate = Decimal(0)
    for kink, rate in zip(kinks, rates):
        if kink >= utilization_pct:
            if kink == utilization_pct:
                rate_bps = Decimal(rate)
            else:
                rate_bps = left_rate + (Decimal(rate) - left_rate) * (
                    utilization_pct - left_kink
                ) / (Decimal(kink) - left_kink)
            return rate_bps / BPS_SCALE
        left_kink = Decimal(kink)
        left_rate = Decimal(rate)

    # Past the last breakpoint: clamp to the final tabulated rate.
    return Decimal(rates[-1]) / BPS_SCALE
