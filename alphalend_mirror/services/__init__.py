"""Service modules"""
from .lending import LendingService, LendingSnapshot, PortfolioReport

__all__ = ["LendingService", "LendingSnapshot", "PortfolioReport"]
