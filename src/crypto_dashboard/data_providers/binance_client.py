"""Binance REST v3 data provider for cryptocurrency markets.

Talks to the public market data endpoints directly over httpx. Symbols are
expected in Binance format (e.g., "BTCUSDT", "ETHBTC").
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import BinanceConfig
from ..indicators import CandleTrend, IndicatorSnapshot, calculate_indicators, weekly_candle_trend
from ..rate_limiter import RateLimiter
from .base import DEFAULT_TIMEOUT_SECONDS, BaseDataProvider, Kline

logger = logging.getLogger(__name__)

MAX_KLINES_LIMIT = 1000
ROTATION_SYMBOLS = ("BTCUSDT", "ETHUSDT", "ETHBTC")

INTERVALS = frozenset({
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
})


@dataclass
class Ticker24h:
    """Rolling 24h statistics for one symbol."""

    symbol: str
    price_change: float
    price_change_percent: float
    weighted_avg_price: float
    prev_close_price: float
    last_price: float
    bid_price: float
    ask_price: float
    open_price: float
    high_price: float
    low_price: float
    volume: float
    quote_volume: float
    open_time: int
    close_time: int
    count: int

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> "Ticker24h":
        return cls(
            symbol=data["symbol"],
            price_change=float(data["priceChange"]),
            price_change_percent=float(data["priceChangePercent"]),
            weighted_avg_price=float(data["weightedAvgPrice"]),
            prev_close_price=float(data["prevClosePrice"]),
            last_price=float(data["lastPrice"]),
            bid_price=float(data["bidPrice"]),
            ask_price=float(data["askPrice"]),
            open_price=float(data["openPrice"]),
            high_price=float(data["highPrice"]),
            low_price=float(data["lowPrice"]),
            volume=float(data["volume"]),
            quote_volume=float(data["quoteVolume"]),
            open_time=int(data["openTime"]),
            close_time=int(data["closeTime"]),
            count=int(data["count"]),
        )


@dataclass
class OrderBookLevel:
    price: float
    quantity: float


@dataclass
class OrderBook:
    last_update_id: int
    bids: list[OrderBookLevel] = field(default_factory=list)
    asks: list[OrderBookLevel] = field(default_factory=list)


@dataclass
class RotationPairs:
    """Cross-pair snapshot used by the rotation dashboard."""

    btc_price: float
    eth_price: float
    eth_btc_ratio: float
    btc_24h_change: float
    eth_24h_change: float
    eth_btc_24h_change: float


@dataclass
class WeeklyCandles:
    candles: list[Kline]
    trend: CandleTrend


class BinanceClient(BaseDataProvider):
    """Binance spot market data client.

    Example:
        async with httpx.AsyncClient(base_url=BinanceClient.default_base_url) as http:
            client = BinanceClient(client=http)
            price = await client.get_current_price("BTCUSDT")
    """

    default_base_url = "https://api.binance.com/api/v3"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        rate_limiter: RateLimiter | None = None,
    ):
        super().__init__(client=client, base_url=base_url, timeout=timeout, rate_limiter=rate_limiter)

    @classmethod
    def from_config(cls, cfg: BinanceConfig, client: httpx.AsyncClient | None = None) -> "BinanceClient":
        return cls(client=client, base_url=cfg.base_url, timeout=cfg.timeout_seconds)

    @property
    def name(self) -> str:
        return "binance"

    async def get_current_price(self, symbol: str) -> float:
        """Get the latest traded price for a symbol."""
        symbol = _require_symbol(symbol)
        data = await self._get("/ticker/price", {"symbol": symbol})
        return float(data["price"])

    async def get_24hr_stats(self, symbol: str) -> Ticker24h:
        """Get rolling 24h ticker statistics for a symbol."""
        symbol = _require_symbol(symbol)
        data = await self._get("/ticker/24hr", {"symbol": symbol})
        return Ticker24h.from_raw(data)

    async def get_klines(self, symbol: str, interval: str = "1d", limit: int = 100) -> list[Kline]:
        """Fetch candlesticks ordered oldest to newest.

        Args:
            symbol: Trading symbol in Binance format
            interval: Kline interval (e.g., "1h", "1d", "1w")
            limit: Number of candles; clamped to the API maximum of 1000

        Returns:
            List of Kline records
        """
        symbol = _require_symbol(symbol)
        if interval not in INTERVALS:
            raise ValueError(f"Unsupported kline interval: {interval}")

        clamped = max(1, min(int(limit), MAX_KLINES_LIMIT))
        if clamped != limit:
            logger.debug(f"Clamped kline limit {limit} to {clamped} for {symbol}")

        data = await self._get("/klines", {"symbol": symbol, "interval": interval, "limit": clamped})
        klines = [Kline.from_raw(row) for row in data]
        klines.sort(key=lambda k: k.open_time)
        return klines

    async def get_historical_klines(
        self,
        symbol: str,
        interval: str,
        start_time: int,
        end_time: int | None = None,
    ) -> list[Kline]:
        """Fetch up to 1000 candles starting at start_time (ms since epoch)."""
        symbol = _require_symbol(symbol)
        params: dict[str, Any] = {
            "symbol": symbol,
            "interval": interval,
            "startTime": start_time,
            "limit": MAX_KLINES_LIMIT,
        }
        if end_time is not None:
            params["endTime"] = end_time

        data = await self._get("/klines", params)
        return [Kline.from_raw(row) for row in data]

    async def get_order_book(self, symbol: str, limit: int = 100) -> OrderBook:
        symbol = _require_symbol(symbol)
        data = await self._get("/depth", {"symbol": symbol, "limit": limit})
        return OrderBook(
            last_update_id=int(data["lastUpdateId"]),
            bids=[OrderBookLevel(float(p), float(q)) for p, q, *_ in data.get("bids", [])],
            asks=[OrderBookLevel(float(p), float(q)) for p, q, *_ in data.get("asks", [])],
        )

    async def get_exchange_info(self) -> dict[str, Any]:
        return await self._get("/exchangeInfo")

    async def get_rotation_pairs(self) -> RotationPairs:
        """Fetch BTCUSDT, ETHUSDT and ETHBTC 24h stats concurrently.

        Any failing sub-call fails the whole snapshot.
        """
        results = await asyncio.gather(*(self.get_24hr_stats(s) for s in ROTATION_SYMBOLS))
        by_symbol = {ticker.symbol: ticker for ticker in results}

        btc = by_symbol["BTCUSDT"]
        eth = by_symbol["ETHUSDT"]
        eth_btc = by_symbol["ETHBTC"]

        return RotationPairs(
            btc_price=btc.last_price,
            eth_price=eth.last_price,
            eth_btc_ratio=eth_btc.last_price,
            btc_24h_change=btc.price_change_percent,
            eth_24h_change=eth.price_change_percent,
            eth_btc_24h_change=eth_btc.price_change_percent,
        )

    async def get_weekly_candles(self, symbol: str, weeks: int = 4) -> WeeklyCandles:
        """Weekly candles and the trend of the colour run ending at the latest week."""
        klines = await self.get_klines(symbol, "1w", weeks)
        return WeeklyCandles(candles=klines, trend=weekly_candle_trend(klines))

    @staticmethod
    def calculate_indicators(klines: list[Kline]) -> IndicatorSnapshot:
        return calculate_indicators([k.close for k in klines])


def _require_symbol(symbol: str) -> str:
    if not symbol or not symbol.strip():
        raise ValueError("symbol must be a non-empty string")
    return symbol.strip().upper()
