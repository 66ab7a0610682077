"""Off-chain mirror of AlphaLend market and position accounting on SUI."""

__version__ = "0.1.0"
