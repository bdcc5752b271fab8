"""Quote orchestration engine for same-chain swaps and cross-chain bridges."""

__version__ = "0.1.0"
