"""Data providers module for market data fetching.

Contains:
- Kline / OHLCCandle: Candlestick record types
- BaseDataProvider: Shared httpx plumbing and error translation
- BinanceClient: Exchange-style spot market data
- CoinGeckoClient: Market-cap and dominance data with self-throttling
"""

from .base import (
    BaseDataProvider,
    Kline,
    OHLCCandle,
    klines_to_dataframe,
)
from .binance_client import (
    BinanceClient,
    OrderBook,
    OrderBookLevel,
    RotationPairs,
    Ticker24h,
    WeeklyCandles,
)
from .coingecko_client import (
    CoinGeckoClient,
    CoinMarket,
    GlobalMarketData,
    HistoricalMarketData,
    RotationMetrics,
)

__all__ = [
    # Base types
    "Kline",
    "OHLCCandle",
    "BaseDataProvider",
    # Binance
    "BinanceClient",
    "Ticker24h",
    "OrderBook",
    "OrderBookLevel",
    "RotationPairs",
    "WeeklyCandles",
    # CoinGecko
    "CoinGeckoClient",
    "GlobalMarketData",
    "CoinMarket",
    "HistoricalMarketData",
    "RotationMetrics",
    # Utilities
    "klines_to_dataframe",
]
