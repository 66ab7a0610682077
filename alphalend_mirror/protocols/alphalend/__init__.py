"""AlphaLend accounting: decoding, rate curve, accrual, valuation."""
from .adapter import AlphaLendAdapter
from .market import project_market, project_markets
from .portfolio import valuate_position, valuate_positions
from .stats import aggregate

__all__ = [
    "AlphaLendAdapter",
    "aggregate",
    "project_market",
    "project_markets",
    "valuate_position",
    "valuate_positions",
]
