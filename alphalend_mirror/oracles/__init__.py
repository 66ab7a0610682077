from .pyth import PythOracle

__all__ = ["PythOracle"]
