"""Crypto dashboard data layer: market data clients, derived metrics and API reliability probing."""

__version__ = "0.1.0"
